"""Program: the class-hierarchy model the effect core queries."""

from __future__ import annotations

from alloc_checker.ir.nodes import CallExpr, ClassDecl, Marker, MethodDecl


class Program:
    """Index of classes and methods with hierarchy and override queries.

    Read-only once checking starts.
    """

    def __init__(self) -> None:
        self._classes: dict[str, ClassDecl] = {}
        self._methods: dict[str, MethodDecl] = {}
        self._units: list[ClassDecl] = []

    def add_unit(self, cls: ClassDecl) -> None:
        """Register a top-level unit and every class/method nested in it."""
        self._units.append(cls)
        self._register(cls)

    def _register(self, cls: ClassDecl) -> None:
        self._classes[cls.id] = cls
        for node in cls.body:
            if isinstance(node, ClassDecl):
                self._register(node)
            elif isinstance(node, MethodDecl):
                self.add_method(node)

    def add_class(self, cls: ClassDecl) -> None:
        """Register a class that is not itself a unit (e.g. a local class)."""
        self._register(cls)

    def add_method(self, method: MethodDecl) -> None:
        self._methods[method.id] = method

    def units(self) -> list[ClassDecl]:
        return list(self._units)

    def get_class(self, class_id: str | None) -> ClassDecl | None:
        if class_id is None:
            return None
        return self._classes.get(class_id)

    def get_method(self, method_id: str | None) -> MethodDecl | None:
        if method_id is None:
            return None
        return self._methods.get(method_id)

    def all_classes(self) -> list[ClassDecl]:
        return list(self._classes.values())

    # ── Hierarchy ─────────────────────────────────────────────────────────

    def superclass(self, cls: ClassDecl) -> ClassDecl | None:
        return self.get_class(cls.superclass)

    def direct_supertypes(self, cls: ClassDecl) -> list[ClassDecl]:
        return [c for c in (self.get_class(i) for i in cls.interfaces) if c is not None]

    def owner_of(self, method: MethodDecl) -> ClassDecl | None:
        return self._classes.get(method.owner)

    def overridden_method(self, method: MethodDecl, ancestor: ClassDecl) -> MethodDecl | None:
        """Return the method declared directly in `ancestor` that `method` overrides."""
        if not _can_override(method):
            return None
        for candidate in ancestor.methods():
            if candidate.id == method.id or not _can_override(candidate):
                continue
            if candidate.name == method.name:
                return candidate
        return None

    def find_method(self, cls: ClassDecl, name: str, *, skip_self: bool = False) -> MethodDecl | None:
        """Look `name` up from `cls` upward: own body, superclass chain, then supertypes."""
        seen: set[str] = set()
        return self._find_method(cls, name, skip_self, seen)

    def _find_method(
        self, cls: ClassDecl, name: str, skip_self: bool, seen: set[str],
    ) -> MethodDecl | None:
        if cls.id in seen:
            return None
        seen.add(cls.id)
        if not skip_self:
            for m in cls.methods():
                if m.name == name:
                    return m
        for base in [self.superclass(cls), *self.direct_supertypes(cls)]:
            if base is None:
                continue
            found = self._find_method(base, name, False, seen)
            if found is not None:
                return found
        return None

    # ── Declarations and call sites ───────────────────────────────────────

    def explicit_effect_annotation(self, method: MethodDecl) -> frozenset[Marker]:
        return method.markers

    def callee_of(self, call: CallExpr) -> MethodDecl | None:
        return self.get_method(call.callee_id)

    def __len__(self) -> int:
        return len(self._classes)


def _can_override(method: MethodDecl) -> bool:
    if method.is_constructor or method.is_nested:
        return False
    # name-mangled private methods are never overridden
    return not (method.name.startswith("__") and not method.name.endswith("__"))
