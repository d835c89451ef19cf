"""Render check results as a Markdown report."""

from __future__ import annotations

from collections import defaultdict

from alloc_checker.models import Diagnostic
from alloc_checker.scanner import CheckResult

_KIND_TITLES = {
    "annotation_conflict": "Conflicting markers",
    "invalid_override": "Invalid overrides",
    "ambiguous_inheritance": "Ambiguous inheritance",
    "invalid_call": "Allocations in @no_alloc code",
}


def render_markdown(result: CheckResult) -> str:
    """Produce a Markdown report from a CheckResult."""
    sections: list[str] = []
    r = result.report
    name = result.project_path.name

    # ── Title ────────────────────────────────────────────────────────────
    sections.append(f"# Allocation Effect Report: {name}\n")

    # ── Summary box ──────────────────────────────────────────────────────
    summary_lines = [
        f"- **Path**: `{result.project_path}`",
        f"- **Files checked**: {r.files_checked}",
        f"- **Classes checked**: {r.classes_checked}",
        f"- **Failures**: {r.failure_count}",
        f"- **Warnings**: {r.warning_count}",
        f"- **Result**: {_verdict(r.failure_count, r.warning_count)}",
    ]
    sections.append("\n".join(summary_lines) + "\n")

    # ── Diagnostics by kind ──────────────────────────────────────────────
    by_kind: dict[str, list[Diagnostic]] = defaultdict(list)
    for d in r.diagnostics:
        by_kind[d.kind.value].append(d)

    for kind, title in _KIND_TITLES.items():
        diags = by_kind.get(kind)
        if not diags:
            continue
        sections.append(f"## {title}\n")
        sections.append("| Location | Severity | Message | Code |")
        sections.append("|---|---|---|---|")
        for d in diags:
            loc = f"`{d.location.file}:{d.location.line}`"
            code = f"`{d.location.snippet}`" if d.location.snippet else ""
            sections.append(f"| {loc} | {d.severity} | {_escape(d.message)} | {_escape(code)} |")
        sections.append("")

    # ── Skipped files ────────────────────────────────────────────────────
    if r.skipped_files:
        sections.append("## Skipped Files\n")
        for s in r.skipped_files:
            sections.append(f"- `{s.file}`: {s.reason}")
        sections.append("")

    return "\n".join(sections)


def _verdict(failures: int, warnings: int) -> str:
    if failures:
        return "FAIL"
    if warnings:
        return "PASS (with warnings)"
    return "PASS"


def _escape(text: str) -> str:
    return text.replace("|", "\\|")
