"""Front-end IR: declarations and allocation sites. Pure data, no logic.

Any front end binds to these types; the effect core never sees source syntax.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class Marker(str, Enum):
    NO_ALLOC = "no_alloc"
    MAY_ALLOC = "may_alloc"


@dataclass(frozen=True)
class SourceLocation:
    file: str
    line: int
    col: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.col}"


@dataclass
class CallExpr:
    """Method or function invocation."""
    location: SourceLocation
    name: str                       # callee as written, e.g. "self.reset"
    callee_id: str | None = None    # MethodDecl.id, None when unresolved
    children: list[Node] = field(default_factory=list)


@dataclass
class NewExpr:
    """Object construction: always an allocation site."""
    location: SourceLocation
    type_name: str
    type_id: str | None = None      # ClassDecl.id for project classes
    children: list[Node] = field(default_factory=list)


@dataclass
class NewArrayExpr:
    """Array / container creation: always an allocation site."""
    location: SourceLocation
    kind: str                       # "list", "dict", "set comprehension", ...
    children: list[Node] = field(default_factory=list)


@dataclass
class LocalDecl:
    """A local declaration (assignment); the scope suppressions attach to."""
    location: SourceLocation
    targets: list[str] = field(default_factory=list)
    suppressions: frozenset[str] = frozenset()
    children: list[Node] = field(default_factory=list)


@dataclass
class MethodDecl:
    id: str                         # "file.py::Class.method" | "file.py::func"
    name: str
    owner: str                      # ClassDecl.id of the declaring type
    location: SourceLocation
    params: tuple[str, ...] = ()
    markers: frozenset[Marker] = frozenset()
    is_constructor: bool = False
    is_nested: bool = False         # def inside another def; overrides nothing
    body: list[Node] = field(default_factory=list)

    @property
    def qualname(self) -> str:
        return self.id.split("::", 1)[-1]


@dataclass
class ClassDecl:
    id: str                         # "file.py::Outer.Inner" | "file.py::<module>"
    name: str
    file: str
    location: SourceLocation
    superclass: str | None = None   # ClassDecl.id
    interfaces: list[str] = field(default_factory=list)  # direct supertypes, in order
    unresolved_bases: list[str] = field(default_factory=list)
    body: list[Node] = field(default_factory=list)
    is_module: bool = False

    @property
    def qualname(self) -> str:
        return self.id.split("::", 1)[-1]

    def methods(self) -> list[MethodDecl]:
        return [m for m in self.body if isinstance(m, MethodDecl)]


Node = Union[ClassDecl, MethodDecl, CallExpr, NewExpr, NewArrayExpr, LocalDecl]
AllocationSite = Union[CallExpr, NewExpr, NewArrayExpr]
