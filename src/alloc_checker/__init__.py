"""alloc-checker: a static checker for @no_alloc methods.

    from pathlib import Path
    from alloc_checker import check

    result = check(Path("src/"))
    for d in result.report.diagnostics:
        print(d.location.file, d.location.line, d.message)
"""

__version__ = "0.1.0"

from alloc_checker.markers import may_alloc, no_alloc  # noqa: E402
from alloc_checker.scanner import check, check_source  # noqa: E402

__all__ = ["__version__", "check", "check_source", "may_alloc", "no_alloc"]
