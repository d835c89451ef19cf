"""Multi-pass AST walker: lowers Python modules to the checker IR.

Passes:
  1. Declarations: module pseudo-class, classes, methods, markers, imports
  2. Bases: superclass and direct supertypes, resolved across files
  3. Bodies: allocation sites, local declarations, nested defs

Each module becomes a unit: a ``<module>`` pseudo-class whose methods are the
top-level functions and whose body holds the module's classes.
"""

from __future__ import annotations

import ast
import io
import logging
import tokenize
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from alloc_checker.config import CheckerConfig
from alloc_checker.errors import FrontendError
from alloc_checker.ir.nodes import (
    CallExpr,
    ClassDecl,
    LocalDecl,
    Marker,
    MethodDecl,
    NewArrayExpr,
    NewExpr,
    Node,
    SourceLocation,
)
from alloc_checker.ir.program import Program
from alloc_checker.markers import MAY_ALLOC_NAMES, NO_ALLOC_NAMES, suppression_pattern

log = logging.getLogger(__name__)

MODULE_NAME = "<module>"
_CONSTRUCTOR_NAMES = {"__init__", "__new__"}

_ARRAY_KINDS: dict[type, str] = {
    ast.List: "list",
    ast.Set: "set",
    ast.Dict: "dict",
    ast.ListComp: "list comprehension",
    ast.SetComp: "set comprehension",
    ast.DictComp: "dict comprehension",
    ast.Tuple: "tuple",
    ast.GeneratorExp: "generator",
    ast.JoinedStr: "f-string",
}


@dataclass
class ModuleInfo:
    rel: str
    source: str
    tree: ast.Module
    unit: ClassDecl
    symbol_imports: dict[str, tuple[str, str]] = field(default_factory=dict)  # local -> (module, name)
    module_aliases: dict[str, str] = field(default_factory=dict)              # local -> module
    suppressed_lines: set[int] = field(default_factory=set)
    decls: dict[int, ClassDecl | MethodDecl] = field(default_factory=dict)    # id(ast node) -> decl
    base_names: dict[str, list[str]] = field(default_factory=dict)            # class id -> bases as written


# ── Pass 1: declarations ──────────────────────────────────────────────────


def parse_module(source: str, rel: str, config: CheckerConfig | None = None) -> ModuleInfo:
    """Parse one module and collect its declarations.

    Raises:
        FrontendError: the source does not parse.
    """
    config = config or CheckerConfig()
    try:
        tree = ast.parse(source, filename=rel)
    except SyntaxError as exc:
        raise FrontendError(rel, f"syntax error: {exc.msg}", exc.lineno) from exc

    unit = ClassDecl(
        id=f"{rel}::{MODULE_NAME}",
        name=MODULE_NAME,
        file=rel,
        location=SourceLocation(rel, 1),
        is_module=True,
    )
    info = ModuleInfo(rel=rel, source=source, tree=tree, unit=unit)
    _collect_imports(tree, info)
    info.suppressed_lines = _suppressed_lines(source, config.suppression_key)
    _declare_members(tree.body, unit, info, prefix="", is_module=True)
    return info


def _declare_members(
    stmts: list[ast.stmt],
    owner: ClassDecl,
    info: ModuleInfo,
    prefix: str,
    is_module: bool = False,
) -> None:
    """Declare the functions and classes directly in `stmts` as members of `owner`."""
    taken: set[str] = set()
    for stmt in stmts:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            base_id = f"{info.rel}::{stmt.name}" if is_module else f"{owner.id}.{stmt.name}"
            method = _make_method(stmt, _unique(base_id, stmt.lineno, taken), owner, info.rel)
            owner.body.append(method)
            info.decls[id(stmt)] = method
        elif isinstance(stmt, ast.ClassDef):
            qual = f"{prefix}.{stmt.name}" if prefix else stmt.name
            cls = _declare_class(stmt, _unique(f"{info.rel}::{qual}", stmt.lineno, taken), info)
            owner.body.append(cls)
            _declare_members(stmt.body, cls, info, prefix=qual)


def _declare_class(node: ast.ClassDef, class_id: str, info: ModuleInfo) -> ClassDecl:
    cls = ClassDecl(
        id=class_id,
        name=node.name,
        file=info.rel,
        location=_loc(info.rel, node),
    )
    info.decls[id(node)] = cls
    info.base_names[cls.id] = [n for n in (_dotted_name(b) for b in node.bases) if n]
    return cls


def _make_method(
    node: ast.FunctionDef | ast.AsyncFunctionDef,
    method_id: str,
    owner: ClassDecl,
    rel: str,
    nested: bool = False,
) -> MethodDecl:
    params = [a.arg for a in node.args.posonlyargs + node.args.args]
    if _receiver_name(node, owner) is not None:
        params = params[1:]
    return MethodDecl(
        id=method_id,
        name=node.name,
        owner=owner.id,
        location=_loc(rel, node),
        params=tuple(params),
        markers=_markers(node.decorator_list),
        is_constructor=node.name in _CONSTRUCTOR_NAMES and not owner.is_module,
        is_nested=nested,
    )


def _unique(decl_id: str, line: int, taken: set[str]) -> str:
    # property setters and conditional redefinitions reuse a name
    if decl_id in taken:
        decl_id = f"{decl_id}@{line}"
    taken.add(decl_id)
    return decl_id


def _collect_imports(tree: ast.Module, info: ModuleInfo) -> None:
    """Record import aliases; modules are resolved to files in pass 2."""
    package = _package_parts(info.rel)
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    info.module_aliases[alias.asname] = alias.name
                else:
                    root = alias.name.split(".")[0]
                    info.module_aliases[root] = root
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                base = package[: len(package) - (node.level - 1)] if node.level > 1 else package
                module = ".".join(base + (node.module.split(".") if node.module else []))
            else:
                module = node.module or ""
            for alias in node.names:
                if alias.name == "*":
                    continue
                info.symbol_imports[alias.asname or alias.name] = (module, alias.name)


def _suppressed_lines(source: str, key: str) -> set[int]:
    pattern = suppression_pattern(key)
    lines: set[int] = set()
    try:
        for tok in tokenize.generate_tokens(io.StringIO(source).readline):
            if tok.type == tokenize.COMMENT and pattern.search(tok.string):
                lines.add(tok.start[0])
    except (tokenize.TokenError, SyntaxError):
        log.debug("Could not tokenize for suppressions", exc_info=True)
    return lines


# ── Pass 2: symbols and bases ─────────────────────────────────────────────


class SymbolTable:
    """Cross-file index of module files, classes and module-level functions."""

    def __init__(self, modules: list[ModuleInfo]) -> None:
        self.module_files: dict[str, str] = {}
        self.classes: dict[str, ClassDecl] = {}
        self.functions: dict[str, MethodDecl] = {}
        self._by_short_name: dict[str, list[str]] = defaultdict(list)

        for info in modules:
            for dotted in _module_names(info.rel):
                self.module_files.setdefault(dotted, info.rel)
            for fn in info.unit.methods():
                self.functions[fn.id] = fn
            self._index_classes(info.unit)

    def _index_classes(self, owner: ClassDecl) -> None:
        for node in owner.body:
            if isinstance(node, ClassDecl):
                self.classes[node.id] = node
                self._by_short_name[node.name].append(node.id)
                self._index_classes(node)

    def get(self, decl_id: str) -> ClassDecl | MethodDecl | None:
        return self.classes.get(decl_id) or self.functions.get(decl_id)

    def lookup(self, name: str, info: ModuleInfo) -> ClassDecl | MethodDecl | None:
        """Resolve a (possibly dotted) name as written in `info` to a class or function."""
        head, _, rest = name.partition(".")

        if head in info.symbol_imports:
            module, symbol = info.symbol_imports[head]
            target = self.module_files.get(module)
            if target:
                found = self.get(f"{target}::{symbol}" + (f".{rest}" if rest else ""))
                if found is not None:
                    return found
            # from pkg import submodule
            sub = self.module_files.get(f"{module}.{symbol}" if module else symbol)
            if sub and rest:
                return self.get(f"{sub}::{rest}")
            return None

        if head in info.module_aliases and rest:
            parts = f"{info.module_aliases[head]}.{rest}".split(".")
            for i in range(len(parts) - 1, 0, -1):
                target = self.module_files.get(".".join(parts[:i]))
                if target:
                    return self.get(f"{target}::{'.'.join(parts[i:])}")
            return None

        return self.get(f"{info.rel}::{name}")

    def lookup_class(self, name: str, info: ModuleInfo) -> ClassDecl | None:
        found = self.lookup(name, info)
        if isinstance(found, ClassDecl):
            return found
        if found is None and "." not in name:
            # last resort: a unique class of that name anywhere in the project
            candidates = self._by_short_name.get(name, [])
            if len(candidates) == 1:
                return self.classes[candidates[0]]
        return None


def _resolve_bases(
    cls: ClassDecl,
    info: ModuleInfo,
    symbols: SymbolTable,
    local_names: dict[str, ClassDecl | MethodDecl] | None = None,
) -> None:
    resolved: list[str] = []
    for name in info.base_names.get(cls.id, []):
        local = (local_names or {}).get(name)
        base = local if isinstance(local, ClassDecl) else symbols.lookup_class(name, info)
        if base is None or base.id == cls.id:
            cls.unresolved_bases.append(name)
        elif base.id not in resolved:
            resolved.append(base.id)
    # first project base is the superclass, the rest are direct supertypes
    cls.superclass = resolved[0] if resolved else None
    cls.interfaces = resolved[1:]


# ── Pass 3: bodies ────────────────────────────────────────────────────────


@dataclass
class _Scope:
    info: ModuleInfo
    symbols: SymbolTable
    program: Program
    config: CheckerConfig
    cls: ClassDecl                      # class used for self./super() lookups
    method: MethodDecl | None = None
    receiver: str | None = None         # name bound to self / cls
    locals: dict[str, ClassDecl | MethodDecl] = field(default_factory=dict)


def build_program(modules: list[ModuleInfo], config: CheckerConfig | None = None) -> Program:
    """Link parsed modules into a Program with fully lowered bodies."""
    config = config or CheckerConfig()
    symbols = SymbolTable(modules)

    for info in modules:
        for cls_id in info.base_names:
            _resolve_bases(symbols.classes[cls_id], info, symbols)

    program = Program()
    for info in modules:
        program.add_unit(info.unit)

    for info in modules:
        scope = _Scope(info=info, symbols=symbols, program=program, config=config, cls=info.unit)
        _lower_class_body(info.tree.body, info.unit, scope)

    log.debug("Program built: %d classes from %d modules", len(program), len(modules))
    return program


def _lower_class_body(stmts: list[ast.stmt], cls: ClassDecl, outer: _Scope) -> None:
    scope = _Scope(
        info=outer.info, symbols=outer.symbols, program=outer.program,
        config=outer.config, cls=cls,
    )
    body: list[Node] = []
    for stmt in stmts:
        decl = scope.info.decls.get(id(stmt))
        if isinstance(decl, MethodDecl):
            body.extend(_lower_def_header(stmt, scope))
            _lower_method_body(stmt, decl, scope, receiver=_receiver_name(stmt, cls))
            body.append(decl)
        elif isinstance(decl, ClassDecl):
            body.extend(_lower_class_header(stmt, scope))
            _lower_class_body(stmt.body, decl, scope)
            body.append(decl)
        else:
            body.extend(_lower(stmt, scope))
    cls.body = body


def _lower_method_body(
    node: ast.FunctionDef | ast.AsyncFunctionDef,
    method: MethodDecl,
    outer: _Scope,
    receiver: str | None,
) -> None:
    scope = _Scope(
        info=outer.info, symbols=outer.symbols, program=outer.program,
        config=outer.config, cls=outer.cls, method=method, receiver=receiver,
        locals=dict(outer.locals),
    )
    body: list[Node] = []
    for stmt in node.body:
        body.extend(_lower(stmt, scope))
    method.body = body


def _lower(node: ast.AST, scope: _Scope) -> list[Node]:
    """Lower any AST node to the allocation-relevant IR nodes beneath it."""
    if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
        return _lower_def(node, scope)
    if isinstance(node, ast.ClassDef):
        return _lower_local_class(node, scope)
    if isinstance(node, (ast.Assign, ast.AnnAssign, ast.AugAssign)):
        return _lower_assign(node, scope)
    if isinstance(node, ast.Call):
        return _lower_call(node, scope)
    if isinstance(node, ast.Lambda):
        # the body belongs to the enclosing function, but is not an
        # immediate part of the statement holding the lambda
        return [LocalDecl(_loc(scope.info.rel, node), [], frozenset(), _lower_children(node, scope))]
    kind = _ARRAY_KINDS.get(type(node))
    if kind is not None and _allocates(node):
        return [NewArrayExpr(_loc(scope.info.rel, node), kind, _lower_children(node, scope))]
    return _lower_children(node, scope)


def _allocates(node: ast.expr) -> bool:
    """Whether a display, comprehension or f-string builds a new object when evaluated."""
    if isinstance(node, (ast.List, ast.Tuple)) and not isinstance(node.ctx, ast.Load):
        # unpacking target, not a display
        return False
    if isinstance(node, ast.Tuple):
        # constant tuples are folded by the compiler
        return not all(isinstance(e, ast.Constant) for e in node.elts)
    if isinstance(node, ast.JoinedStr):
        # f"text" with no replacement fields is a constant
        return any(isinstance(v, ast.FormattedValue) for v in node.values)
    return True


def _lower_children(node: ast.AST, scope: _Scope) -> list[Node]:
    out: list[Node] = []
    for child in ast.iter_child_nodes(node):
        out.extend(_lower(child, scope))
    return out


def _lower_assign(node: ast.Assign | ast.AnnAssign | ast.AugAssign, scope: _Scope) -> list[Node]:
    if node.value is None:
        return []
    targets = node.targets if isinstance(node, ast.Assign) else [node.target]
    children: list[Node] = []
    for t in targets:
        children.extend(_lower(t, scope))
    children.extend(_lower(node.value, scope))

    end = node.end_lineno or node.lineno
    suppressions: frozenset[str] = frozenset()
    if any(line in scope.info.suppressed_lines for line in range(node.lineno, end + 1)):
        suppressions = frozenset({scope.config.suppression_key})

    names = [n for n in (_dotted_name(t) for t in targets) if n]
    return [LocalDecl(_loc(scope.info.rel, node), names, suppressions, children)]


def _lower_def_header(node: ast.FunctionDef | ast.AsyncFunctionDef, scope: _Scope) -> list[Node]:
    """Decorators and default values, evaluated where the def statement runs."""
    out: list[Node] = []
    for dec in node.decorator_list:
        if _marker_of(dec) is None:
            out.extend(_lower(dec, scope))
    for default in node.args.defaults + [d for d in node.args.kw_defaults if d is not None]:
        out.extend(_lower(default, scope))
    return out


def _lower_class_header(node: ast.ClassDef, scope: _Scope) -> list[Node]:
    out: list[Node] = []
    for dec in node.decorator_list:
        out.extend(_lower(dec, scope))
    for kw in node.keywords:
        out.extend(_lower(kw.value, scope))
    return out


def _lower_def(node: ast.FunctionDef | ast.AsyncFunctionDef, scope: _Scope) -> list[Node]:
    """A def outside pass-1 positions: nested in a function, or under if/try."""
    out = _lower_def_header(node, scope)
    if scope.method is not None:
        decl_id = _local_id(f"{scope.method.id}.<locals>.{node.name}", node, scope.program)
        decl = _make_method(node, decl_id, scope.cls, scope.info.rel, nested=True)
        scope.locals[node.name] = decl
        # closures see the enclosing receiver
        receiver = scope.receiver
    else:
        base = f"{scope.info.rel}::{node.name}" if scope.cls.is_module else f"{scope.cls.id}.{node.name}"
        decl = _make_method(node, f"{base}@{node.lineno}", scope.cls, scope.info.rel)
        receiver = _receiver_name(node, scope.cls)
    scope.program.add_method(decl)
    _lower_method_body(node, decl, scope, receiver=receiver)
    out.append(decl)
    return out


def _lower_local_class(node: ast.ClassDef, scope: _Scope) -> list[Node]:
    out = _lower_class_header(node, scope)
    owner_id = scope.method.id if scope.method is not None else scope.cls.id
    class_id = _local_id(f"{owner_id}.<locals>.{node.name}", node, scope.program)
    cls = _declare_class(node, class_id, scope.info)
    _declare_members(node.body, cls, scope.info, prefix=cls.qualname)
    _resolve_bases(cls, scope.info, scope.symbols, scope.locals)
    for inner in _nested_classes(cls):
        _resolve_bases(inner, scope.info, scope.symbols)
    scope.locals[node.name] = cls
    scope.program.add_class(cls)
    _lower_class_body(node.body, cls, scope)
    out.append(cls)
    return out


def _local_id(decl_id: str, node: ast.stmt, program: Program) -> str:
    # branches of an if/try may each define the same local name
    if program.get_method(decl_id) is not None or program.get_class(decl_id) is not None:
        return f"{decl_id}@{node.lineno}"
    return decl_id


def _lower_call(node: ast.Call, scope: _Scope) -> list[Node]:
    loc = _loc(scope.info.rel, node)
    args: list[Node] = []
    for a in node.args:
        args.extend(_lower(a, scope))
    for kw in node.keywords:
        args.extend(_lower(kw.value, scope))
    func = node.func

    # super().method(...)
    if isinstance(func, ast.Attribute) and _is_super_call(func.value):
        callee = scope.program.find_method(scope.cls, func.attr, skip_self=True)
        return [CallExpr(loc, f"super().{func.attr}", callee.id if callee else None, args)]

    name = _dotted_name(func)
    if name is None:
        # computed receiver: Foo().bar(), items[0].pop(), (lambda: x)()
        receiver = _lower(func.value if isinstance(func, ast.Attribute) else func, scope)
        return [CallExpr(loc, ast.unparse(func), None, receiver + args)]

    head, _, attr = name.rpartition(".")

    # self.method(...) / cls.method(...)
    if head and head == scope.receiver:
        callee = scope.program.find_method(scope.cls, attr)
        return [CallExpr(loc, name, callee.id if callee else None, args)]

    local = scope.locals.get(name)
    decl = local if local is not None else scope.symbols.lookup(name, scope.info)
    if isinstance(decl, ClassDecl):
        return [NewExpr(loc, name, decl.id, args)]
    if isinstance(decl, MethodDecl):
        return [CallExpr(loc, name, decl.id, args)]

    if head:
        # Cls.method(...)
        owner = scope.locals.get(head) or scope.symbols.lookup(head, scope.info)
        if isinstance(owner, ClassDecl):
            callee = scope.program.find_method(owner, attr)
            return [CallExpr(loc, name, callee.id if callee else None, args)]
        return [CallExpr(loc, name, None, args)]

    if name in scope.config.non_allocating_builtins:
        return args
    if name in scope.config.allocating_builtins:
        return [NewExpr(loc, name, None, args)]
    return [CallExpr(loc, name, None, args)]


# ── Helpers ───────────────────────────────────────────────────────────────


def _loc(rel: str, node: ast.AST) -> SourceLocation:
    return SourceLocation(rel, getattr(node, "lineno", 0), getattr(node, "col_offset", 0))


def _dotted_name(node: ast.expr) -> str | None:
    """``a.b.c`` for a chain of attributes on a plain name, else None."""
    parts: list[str] = []
    cur = node
    while isinstance(cur, ast.Attribute):
        parts.append(cur.attr)
        cur = cur.value
    if not isinstance(cur, ast.Name):
        return None
    parts.append(cur.id)
    return ".".join(reversed(parts))


def _nested_classes(cls: ClassDecl) -> list[ClassDecl]:
    out: list[ClassDecl] = []
    for node in cls.body:
        if isinstance(node, ClassDecl):
            out.append(node)
            out.extend(_nested_classes(node))
    return out


def _is_super_call(node: ast.expr) -> bool:
    return (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == "super"
    )


def _decorator_name(dec: ast.expr) -> str | None:
    target = dec.func if isinstance(dec, ast.Call) else dec
    if isinstance(target, ast.Name):
        return target.id
    if isinstance(target, ast.Attribute):
        return target.attr
    return None


def _marker_of(dec: ast.expr) -> Marker | None:
    name = _decorator_name(dec)
    if name in NO_ALLOC_NAMES:
        return Marker.NO_ALLOC
    if name in MAY_ALLOC_NAMES:
        return Marker.MAY_ALLOC
    return None


def _markers(decorators: list[ast.expr]) -> frozenset[Marker]:
    return frozenset(m for m in (_marker_of(d) for d in decorators) if m is not None)


def _receiver_name(node: ast.FunctionDef | ast.AsyncFunctionDef, owner: ClassDecl) -> str | None:
    """Name bound to the instance/class for methods; None for plain functions."""
    if owner.is_module:
        return None
    if any(_decorator_name(d) == "staticmethod" for d in node.decorator_list):
        return None
    positional = node.args.posonlyargs + node.args.args
    return positional[0].arg if positional else None


def _package_parts(rel: str) -> list[str]:
    path = PurePosixPath(rel)
    return list(path.parent.parts) if path.parent != PurePosixPath(".") else []


def _module_names(rel: str) -> list[str]:
    """Every dotted name a file may be imported as: "src/pkg/mod.py" -> mod, pkg.mod, src.pkg.mod."""
    path = PurePosixPath(rel)
    parts = list(path.parent.parts) if path.parent != PurePosixPath(".") else []
    if path.stem != "__init__":
        parts.append(path.stem)
    return [".".join(parts[i:]) for i in range(len(parts) - 1, -1, -1)]
