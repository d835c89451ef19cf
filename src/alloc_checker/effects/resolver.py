"""Effect resolution: declared effects, inherited effect ranges, override conflicts.

A method's effect is its explicit marker if it has one. Otherwise it is taken
from the methods it overrides: ``MayAlloc`` when it overrides nothing, else the
meet of the inherited range, so an undeclared override is held to the strictest
requirement any ancestor places on it.
"""

from __future__ import annotations

import logging

from alloc_checker.effects.lattice import Effect, EffectRange, meet
from alloc_checker.ir.nodes import ClassDecl, Marker, MethodDecl
from alloc_checker.ir.program import Program
from alloc_checker.models import DiagnosticKind
from alloc_checker.reporting import DiagnosticCollector

log = logging.getLogger(__name__)


class EffectResolver:
    """Resolves method effects against a Program, reporting conflicts to a sink."""

    def __init__(
        self,
        program: Program,
        sink: DiagnosticCollector,
        *,
        debug_spew: bool = False,
    ) -> None:
        self._program = program
        self._sink = sink
        self._spew = debug_spew
        # method id -> effect; the hierarchy does not change during a pass
        self._cache: dict[str, Effect] = {}
        self._in_progress: set[str] = set()

    def declared_effect(self, method: MethodDecl, *, at_declaration: bool = False) -> Effect:
        """Return the effective effect of `method`.

        With ``at_declaration=True`` (the checker visiting the method's own
        declaration) marker and override conflicts are reported as well.
        """
        markers = self._program.explicit_effect_annotation(method)
        no_alloc = Marker.NO_ALLOC in markers
        may_alloc = Marker.MAY_ALLOC in markers

        if at_declaration:
            if no_alloc and may_alloc:
                self._sink.report(
                    "failure", DiagnosticKind.ANNOTATION_CONFLICT,
                    [method.qualname], method.location, method=method.id,
                )
            self.inherited_effect_range(method, issue_conflict_warning=True)

        # explicit markers always win; only inherited effects are cached
        if no_alloc:
            return self._resolved(method, Effect.NO_ALLOC)
        if may_alloc:
            return self._resolved(method, Effect.MAY_ALLOC)

        cached = self._cache.get(method.id)
        if cached is not None:
            return cached

        if method.id in self._in_progress:
            # cyclic override graph; fall back to the permissive default
            effect = Effect.MAY_ALLOC
        else:
            self._in_progress.add(method.id)
            try:
                r = self.inherited_effect_range(method)
            finally:
                self._in_progress.discard(method.id)
            # By default, methods may allocate memory
            effect = meet(r.min, r.max) if r is not None else Effect.MAY_ALLOC

        self._cache[method.id] = effect
        return self._resolved(method, effect)

    def _resolved(self, method: MethodDecl, effect: Effect) -> Effect:
        if self._spew:
            log.debug("Resolved %s to %s", method.qualname, effect)
        return effect

    def inherited_effect_range(
        self,
        method: MethodDecl,
        issue_conflict_warning: bool = False,
    ) -> EffectRange | None:
        """Summarize the effects of every method `method` overrides.

        Only the checker's visit of the declaration itself passes
        ``issue_conflict_warning=True``; transitive lookups stay silent so each
        conflict is reported once.
        """
        declaring = self._program.owner_of(method)
        if declaring is None:
            return None

        alloc_override: tuple[MethodDecl, ClassDecl] | None = None
        safe_override: tuple[MethodDecl, ClassDecl] | None = None
        invalid_reported = False

        markers = self._program.explicit_effect_annotation(method)
        is_alloc = Marker.MAY_ALLOC in markers and Marker.NO_ALLOC not in markers

        for ancestor in self._ancestors(declaring):
            overridden = self._program.overridden_method(method, ancestor)
            if overridden is None:
                continue
            if self._spew:
                log.debug("%s overrides %s", method.qualname, overridden.qualname)
            eff = self.declared_effect(overridden)
            if eff.no_alloc:
                safe_override = (overridden, ancestor)
                if is_alloc and issue_conflict_warning and not invalid_reported:
                    invalid_reported = True
                    self._sink.report(
                        "failure", DiagnosticKind.INVALID_OVERRIDE,
                        [method.name, declaring.qualname, overridden.qualname, ancestor.qualname],
                        method.location, method=method.id,
                    )
            else:
                alloc_override = (overridden, ancestor)

        if alloc_override is not None and safe_override is not None and issue_conflict_warning:
            # there may be more than two parents; two in conflict is enough to warn
            alloc_m, alloc_cls = alloc_override
            safe_m, safe_cls = safe_override
            self._sink.report(
                "warning", DiagnosticKind.AMBIGUOUS_INHERITANCE,
                [
                    method.name, declaring.qualname,
                    alloc_m.qualname, alloc_cls.qualname,
                    safe_m.qualname, safe_cls.qualname,
                ],
                method.location, method=method.id,
            )

        lo: Effect | None
        hi: Effect | None
        lo = Effect.NO_ALLOC if safe_override else (Effect.MAY_ALLOC if alloc_override else None)
        hi = Effect.MAY_ALLOC if alloc_override else (Effect.NO_ALLOC if safe_override else None)

        if lo is None and hi is None:
            return None
        r = EffectRange.from_bounds(lo, hi)
        if self._spew:
            log.debug(
                "Found %s to have inheritance pair %s%s",
                method.qualname, r, " (conflicting)" if r.conflicting else "",
            )
        return r

    def _ancestors(self, declaring: ClassDecl) -> list[ClassDecl]:
        """Superclass chain nearest-first, then direct supertypes in order."""
        seen = {declaring.id}
        result: list[ClassDecl] = []
        sup = self._program.superclass(declaring)
        while sup is not None and sup.id not in seen:
            seen.add(sup.id)
            result.append(sup)
            sup = self._program.superclass(sup)
        for iface in self._program.direct_supertypes(declaring):
            if iface.id not in seen:
                seen.add(iface.id)
                result.append(iface)
        return result
