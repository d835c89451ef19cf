"""End-to-end tests for the check driver."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from alloc_checker import check, check_source
from alloc_checker.config import CheckerConfig
from alloc_checker.errors import FrontendError
from alloc_checker.models import DiagnosticKind

DEMO = Path(__file__).parent.parent / "examples" / "demo"


def source(code: str) -> str:
    return textwrap.dedent(code)


class TestDemo:
    def test_demo_counts(self):
        report = check(DEMO).report
        assert report.failure_count == 8
        assert report.warning_count == 1
        assert len(report.of_kind(DiagnosticKind.INVALID_CALL)) == 6
        assert len(report.of_kind(DiagnosticKind.INVALID_OVERRIDE)) == 1
        assert len(report.of_kind(DiagnosticKind.ANNOTATION_CONFLICT)) == 1
        assert len(report.of_kind(DiagnosticKind.AMBIGUOUS_INHERITANCE)) == 1
        assert report.skipped_files == []

    def test_demo_file_only(self):
        result = check(DEMO / "effects_demo.py")
        report = result.report
        assert result.project_path == (DEMO / "effects_demo.py").resolve()
        assert report.files_checked == 1
        calls = report.of_kind(DiagnosticKind.INVALID_CALL)
        assert len(calls) == 5
        assert {d.method for d in calls} == {
            "effects_demo.py::AllocationEffects.should_warn",
            "effects_demo.py::SubClass.no_allocate_memory",
        }

    def test_snippets_attached(self):
        report = check(DEMO / "effects_demo.py").report
        [override] = report.of_kind(DiagnosticKind.INVALID_OVERRIDE)
        assert override.location.snippet == "def reset(self, x):"
        assert override.args == ["reset", "SubClass", "SuperClass.reset", "SuperClass"]


class TestCheckSource:
    def test_call_to_unmarked_method(self):
        report = check_source(source("""
            from alloc_checker.markers import no_alloc

            class A:
                @no_alloc
                def a(self):
                    self.b()

                def b(self):
                    pass
        """))
        [d] = report.diagnostics
        assert d.kind == DiagnosticKind.INVALID_CALL
        assert d.location.line == 7
        assert d.location.snippet == "self.b()"
        assert d.args == ["MayAlloc", "NoAlloc", "A.b"]

    def test_invalid_override(self):
        report = check_source(source("""
            from alloc_checker.markers import may_alloc, no_alloc

            class Super:
                @no_alloc
                def m(self):
                    pass

            class Sub(Super):
                @may_alloc
                def m(self):
                    pass
        """))
        assert [d.kind for d in report.diagnostics] == [DiagnosticKind.INVALID_OVERRIDE]
        assert report.failure_count == 1

    def test_ambiguous_inheritance_is_a_warning(self):
        report = check_source(source("""
            from alloc_checker.markers import may_alloc, no_alloc

            class Super:
                @no_alloc
                def m(self):
                    pass

            class Iface:
                @may_alloc
                def m(self):
                    pass

            class Sub(Super, Iface):
                def m(self):
                    return Super()
        """))
        assert report.warning_count == 1
        assert report.failure_count == 1
        [call] = report.of_kind(DiagnosticKind.INVALID_CALL)
        assert call.method == "<string>::Sub.m"

    def test_container_creation_in_no_alloc(self):
        report = check_source(source("""
            from alloc_checker.markers import no_alloc

            @no_alloc
            def f():
                return [0, 0, 0]
        """), filename="arrays.py")
        [d] = report.diagnostics
        assert d.location.file == "arrays.py"
        assert d.args[2] == "new list"

    def test_both_markers(self):
        report = check_source(source("""
            from alloc_checker.markers import may_alloc, no_alloc

            @no_alloc
            @may_alloc
            def f():
                return g()

            def g():
                pass
        """))
        kinds = sorted(d.kind.value for d in report.diagnostics)
        assert kinds == ["annotation_conflict", "invalid_call"]

    def test_suppressed_site(self):
        report = check_source(source("""
            from alloc_checker.markers import no_alloc

            @no_alloc
            def f(n):
                buf = bytearray(n)  # alloceffect: ignore
                return buf
        """))
        assert report.diagnostics == []

    def test_suppression_does_not_reach_lambda_body(self):
        report = check_source(source("""
            from alloc_checker.markers import no_alloc

            @no_alloc
            def f(items):
                key = lambda: sorted(items)  # alloceffect: ignore
                return key
        """))
        assert [(d.location.line, d.args[2]) for d in report.diagnostics] == [(6, "sorted()")]

    def test_marked_helper_in_second_branch(self):
        report = check_source(source("""
            from alloc_checker.markers import no_alloc

            def outer(flag):
                if flag:
                    def helper():
                        return 1
                else:
                    @no_alloc
                    def helper():
                        return [1, 2]
                return helper()
        """))
        assert [(d.location.line, d.args[2]) for d in report.diagnostics] == [(11, "new list")]
        assert report.diagnostics[0].method == "<string>::outer.<locals>.helper@10"

    def test_tuple_generator_and_fstring_in_no_alloc(self):
        report = check_source(source("""
            from alloc_checker.markers import no_alloc

            @no_alloc
            def f(a, b):
                t = (a, b)
                g = (x for x in a)
                s = f"{a}{b}"
                return tuple(a)
        """))
        assert [(d.location.line, d.args[2]) for d in report.diagnostics] == [
            (6, "new tuple"),
            (7, "new generator"),
            (8, "new f-string"),
            (9, "tuple()"),
        ]

    def test_unresolved_call_config(self):
        code = source("""
            from alloc_checker.markers import no_alloc
            import math

            @no_alloc
            def f(x):
                return math.sqrt(x)
        """)
        assert check_source(code).failure_count == 1
        config = CheckerConfig(unresolved_call_effect="NoAlloc")
        assert check_source(code, config=config).failure_count == 0

    def test_syntax_error_raises(self):
        with pytest.raises(FrontendError):
            check_source("class :\n")


class TestProjects:
    def test_skips_unparseable_files(self, tmp_path):
        (tmp_path / "good.py").write_text("def f():\n    return []\n")
        (tmp_path / "bad.py").write_text("def f(:\n")
        report = check(tmp_path).report
        assert report.files_checked == 1
        assert [s.file for s in report.skipped_files] == ["bad.py"]
        assert report.failure_count == 0

    def test_exclude(self, tmp_path):
        (tmp_path / "vendor").mkdir()
        (tmp_path / "vendor" / "lib.py").write_text(source("""
            from alloc_checker.markers import no_alloc

            @no_alloc
            def f():
                return []
        """))
        assert check(tmp_path).report.failure_count == 1
        config = CheckerConfig(exclude=["vendor/*"])
        report = check(tmp_path, config=config).report
        assert report.failure_count == 0
        assert report.files_checked == 0

    def test_config_discovered_from_pyproject(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            '[tool.alloc-checker]\nunresolved-call-effect = "NoAlloc"\n'
        )
        (tmp_path / "mod.py").write_text(source("""
            from alloc_checker.markers import no_alloc

            @no_alloc
            def f(x):
                return x.compute()
        """))
        assert check(tmp_path).report.failure_count == 0

    def test_cross_file_override(self, tmp_path):
        pkg = tmp_path / "pkg"
        pkg.mkdir()
        (pkg / "__init__.py").write_text("")
        (pkg / "base.py").write_text(source("""
            from alloc_checker.markers import no_alloc

            class Base:
                @no_alloc
                def step(self):
                    pass
        """))
        (pkg / "impl.py").write_text(source("""
            from pkg.base import Base

            class Impl(Base):
                def step(self):
                    return {}
        """))
        report = check(tmp_path).report
        [d] = report.diagnostics
        assert d.kind == DiagnosticKind.INVALID_CALL
        assert d.location.file == "pkg/impl.py"
        assert report.classes_checked == 2
