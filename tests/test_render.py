"""Tests for the Markdown report."""

from __future__ import annotations

from pathlib import Path

from alloc_checker.models import CheckReport, Diagnostic, DiagnosticKind, Location, SkippedFile
from alloc_checker.render.markdown import render_markdown
from alloc_checker.scanner import CheckResult


def diag(kind: DiagnosticKind, severity: str = "failure", message: str = "msg") -> Diagnostic:
    return Diagnostic(
        kind=kind,
        severity=severity,
        message_key="k",
        message=message,
        location=Location(file="a.py", line=3, snippet="x = [1]"),
    )


def render(**report) -> str:
    return render_markdown(CheckResult(report=CheckReport(**report), project_path=Path("/tmp/proj")))


class TestMarkdown:
    def test_clean_report(self):
        md = render(files_checked=2)
        assert md.startswith("# Allocation Effect Report: proj")
        assert "- **Files checked**: 2" in md
        assert "- **Result**: PASS" in md
        assert "##" not in md

    def test_warnings_only(self):
        md = render(diagnostics=[diag(DiagnosticKind.AMBIGUOUS_INHERITANCE, "warning")])
        assert "PASS (with warnings)" in md
        assert "## Ambiguous inheritance" in md

    def test_failures_grouped_by_kind(self):
        md = render(diagnostics=[
            diag(DiagnosticKind.INVALID_CALL),
            diag(DiagnosticKind.ANNOTATION_CONFLICT),
        ])
        assert "- **Result**: FAIL" in md
        assert md.index("## Conflicting markers") < md.index("## Allocations in @no_alloc code")
        assert "| `a.py:3` | failure | msg | `x = [1]` |" in md

    def test_pipes_escaped(self):
        md = render(diagnostics=[diag(DiagnosticKind.INVALID_CALL, message="a | b")])
        assert "a \\| b" in md

    def test_skipped_files(self):
        md = render(skipped_files=[SkippedFile(file="bad.py", reason="syntax error")])
        assert "## Skipped Files" in md
        assert "- `bad.py`: syntax error" in md
