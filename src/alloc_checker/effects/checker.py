"""Allocation-site checker: one pre-order pass per unit.

The enclosing method's effect travels down the walk as an immutable
CheckContext. Every call, construction and container creation is compared
against it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from alloc_checker.effects.lattice import Effect, compare
from alloc_checker.effects.resolver import EffectResolver
from alloc_checker.ir.nodes import (
    AllocationSite,
    CallExpr,
    ClassDecl,
    LocalDecl,
    MethodDecl,
    NewArrayExpr,
    NewExpr,
    Node,
)
from alloc_checker.ir.program import Program
from alloc_checker.models import DiagnosticKind
from alloc_checker.reporting import DiagnosticCollector

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckContext:
    effect: Effect
    method_id: str | None = None
    suppressed: bool = False    # applies to the immediate allocation site only


# Class bodies (field and module-level initializers) are not inside any
# method and are checked under the permissive effect, i.e. not at all.
CLASS_CONTEXT = CheckContext(effect=Effect.MAY_ALLOC)


class AllocationChecker:
    """Walks units of a Program and reports invalid allocation sites."""

    def __init__(
        self,
        program: Program,
        sink: DiagnosticCollector,
        *,
        suppression_key: str = "alloceffect",
        unresolved_call_effect: Effect = Effect.MAY_ALLOC,
        debug_spew: bool = False,
    ) -> None:
        self._program = program
        self._sink = sink
        self._suppression_key = suppression_key
        self._unresolved = unresolved_call_effect
        self._spew = debug_spew
        self.resolver = EffectResolver(program, sink, debug_spew=debug_spew)

    def check_program(self) -> None:
        for unit in self._program.units():
            self.check_unit(unit)

    def check_unit(self, unit: ClassDecl) -> None:
        self._visit_class(unit)

    # ── Visitors ──────────────────────────────────────────────────────────

    def _visit(self, node: Node, ctx: CheckContext) -> None:
        if isinstance(node, ClassDecl):
            self._visit_class(node)
        elif isinstance(node, MethodDecl):
            self._visit_method(node)
        elif isinstance(node, LocalDecl):
            self._visit_local(node, ctx)
        elif isinstance(node, CallExpr):
            callee = self._program.callee_of(node)
            if callee is not None:
                target = self.resolver.declared_effect(callee)
                what = callee.qualname
            else:
                target = self._unresolved
                what = node.name
            self._check_site(node, what, target, ctx)
        elif isinstance(node, NewExpr):
            self._check_site(node, f"{node.type_name}()", Effect.MAY_ALLOC, ctx)
        elif isinstance(node, NewArrayExpr):
            self._check_site(node, f"new {node.kind}", Effect.MAY_ALLOC, ctx)

    def _visit_class(self, cls: ClassDecl) -> None:
        if self._spew:
            log.debug("Entering %s with context %s", cls.qualname, CLASS_CONTEXT.effect)
        for member in cls.body:
            self._visit(member, CLASS_CONTEXT)

    def _visit_method(self, method: MethodDecl) -> None:
        # resolving at the declaration also runs conflict detection
        effect = self.resolver.declared_effect(method, at_declaration=True)
        ctx = CheckContext(effect=effect, method_id=method.id)
        if self._spew:
            log.debug("Pushing %s when checking %s", effect, method.qualname)
        for node in method.body:
            self._visit(node, ctx)
        if self._spew:
            log.debug("Popping %s after %s", effect, method.qualname)

    def _visit_local(self, decl: LocalDecl, ctx: CheckContext) -> None:
        suppressed = self._suppression_key in decl.suppressions
        child_ctx = replace(ctx, suppressed=suppressed)
        for child in decl.children:
            self._visit(child, child_ctx)

    def _check_site(
        self,
        site: AllocationSite,
        what: str,
        target: Effect,
        ctx: CheckContext,
    ) -> None:
        if self._spew:
            log.debug(
                "At %s: caller effect %s, target effect %s (%s)",
                site.location, ctx.effect, target, what,
            )
        if ctx.suppressed:
            if self._spew:
                log.debug("Suppressed %s at %s", what, site.location)
        elif compare(target, ctx.effect) > 0:
            self._sink.report(
                "failure", DiagnosticKind.INVALID_CALL,
                [str(target), str(ctx.effect), what],
                site.location, method=ctx.method_id,
            )
        # suppression does not reach nested expressions
        inner = replace(ctx, suppressed=False) if ctx.suppressed else ctx
        for child in site.children:
            self._visit(child, inner)
