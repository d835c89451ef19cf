"""Check driver: discover files, build the program, run the effect checker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from alloc_checker.config import CheckerConfig, load_config
from alloc_checker.effects.checker import AllocationChecker
from alloc_checker.ir import load_program
from alloc_checker.ir.program import Program
from alloc_checker.ir.python_frontend import build_program, parse_module
from alloc_checker.models import CheckReport, Diagnostic
from alloc_checker.reporting import DiagnosticCollector
from alloc_checker.utils import discover_py_files, snippet

log = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Report for one run plus where it came from."""
    report: CheckReport
    project_path: Path


def check(
    project_path: Path,
    *,
    config: CheckerConfig | None = None,
    config_file: Path | None = None,
) -> CheckResult:
    """Check every Python file under a path (file or directory).

    Args:
        project_path: File or directory to check.
        config: Explicit configuration; skips config discovery when given.
        config_file: Config file to load instead of discovering one.

    Returns:
        CheckResult with all diagnostics. Unparseable files are listed in
        ``report.skipped_files``; they never abort the run.
    """
    project_path = project_path.resolve()
    if config is None:
        config = load_config(project_path, config_file)
    workspace = project_path if project_path.is_dir() else project_path.parent

    log.info("Checking %s", project_path)
    py_files = discover_py_files(project_path, config.exclude)
    program, skipped = load_program(workspace, py_files, config)

    diagnostics = check_program(program, config)
    sources = {p.relative_to(workspace).as_posix(): p for p in py_files}
    _attach_snippets(diagnostics, sources)

    report = CheckReport(
        files_checked=len(py_files) - len(skipped),
        classes_checked=sum(1 for c in program.all_classes() if not c.is_module),
        diagnostics=diagnostics,
        skipped_files=skipped,
    )
    log.info(
        "Check complete: %d failures, %d warnings",
        report.failure_count, report.warning_count,
    )
    return CheckResult(report=report, project_path=project_path)


def check_source(
    source: str,
    filename: str = "<string>",
    config: CheckerConfig | None = None,
) -> CheckReport:
    """Check a single in-memory module.

    Raises:
        FrontendError: the source does not parse.
    """
    config = config or CheckerConfig()
    program = build_program([parse_module(source, filename, config)], config)
    diagnostics = check_program(program, config)
    for d in diagnostics:
        d.location.snippet = snippet(source, d.location.line)
    return CheckReport(
        files_checked=1,
        classes_checked=sum(1 for c in program.all_classes() if not c.is_module),
        diagnostics=diagnostics,
    )


def check_program(program: Program, config: CheckerConfig | None = None) -> list[Diagnostic]:
    """Run the allocation checker over every unit of `program`, in order."""
    config = config or CheckerConfig()
    sink = DiagnosticCollector()
    checker = AllocationChecker(
        program,
        sink,
        suppression_key=config.suppression_key,
        unresolved_call_effect=config.unresolved_call_effect,
        debug_spew=config.debug_spew,
    )
    checker.check_program()
    return sink.diagnostics


def _attach_snippets(diagnostics: list[Diagnostic], sources: dict[str, Path]) -> None:
    cache: dict[str, str] = {}
    for d in diagnostics:
        path = sources.get(d.location.file)
        if path is None:
            continue
        if d.location.file not in cache:
            try:
                cache[d.location.file] = path.read_text(errors="replace")
            except OSError:
                cache[d.location.file] = ""
        d.location.snippet = snippet(cache[d.location.file], d.location.line)
