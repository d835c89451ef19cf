"""Diagnostic sink and message catalogue."""

from __future__ import annotations

import logging

from alloc_checker.ir.nodes import SourceLocation
from alloc_checker.models import Diagnostic, DiagnosticKind, Location, Severity

log = logging.getLogger(__name__)

# kind -> (message key, template); templates take the positional args
MESSAGES: dict[DiagnosticKind, tuple[str, str]] = {
    DiagnosticKind.ANNOTATION_CONFLICT: (
        "annotations.conflicts",
        "{0} is marked both @no_alloc and @may_alloc",
    ),
    DiagnosticKind.INVALID_OVERRIDE: (
        "override.effect.invalid",
        "{0} in {1} is @may_alloc but overrides @no_alloc {2} in {3}",
    ),
    DiagnosticKind.AMBIGUOUS_INHERITANCE: (
        "override.effect.warning.inheritance",
        "{0} in {1} inherits conflicting effects: {2} in {3} may allocate, "
        "{4} in {5} does not; assuming NoAlloc",
    ),
    DiagnosticKind.INVALID_CALL: (
        "call.invalid.alloc",
        "{2} has effect {0}, not allowed in a {1} context",
    ),
}


class DiagnosticCollector:
    """Accumulates diagnostics for one pass. ``report`` never raises."""

    def __init__(self) -> None:
        self._diagnostics: list[Diagnostic] = []

    def report(
        self,
        severity: Severity,
        kind: DiagnosticKind,
        args: list[str],
        location: SourceLocation,
        method: str | None = None,
    ) -> None:
        key, template = MESSAGES[kind]
        try:
            message = template.format(*args)
        except IndexError:
            message = f"{key}: {', '.join(args)}"
        diag = Diagnostic(
            kind=kind,
            severity=severity,
            message_key=key,
            message=message,
            args=list(args),
            location=Location(file=location.file, line=location.line, col=location.col),
            method=method,
        )
        self._diagnostics.append(diag)
        log.debug("%s %s at %s: %s", severity, key, location, message)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return list(self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)
