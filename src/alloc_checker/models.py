"""Pydantic models for check reports."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, computed_field


class DiagnosticKind(str, Enum):
    ANNOTATION_CONFLICT = "annotation_conflict"
    INVALID_OVERRIDE = "invalid_override"
    AMBIGUOUS_INHERITANCE = "ambiguous_inheritance"
    INVALID_CALL = "invalid_call"


Severity = Literal["failure", "warning"]


class Location(BaseModel):
    file: str
    line: int
    col: int = 0
    snippet: str = ""


class Diagnostic(BaseModel):
    kind: DiagnosticKind
    severity: Severity
    message_key: str            # e.g. "call.invalid.alloc"
    message: str
    args: list[str] = Field(default_factory=list)
    location: Location
    method: str | None = None   # MethodDecl.id the diagnostic belongs to


class SkippedFile(BaseModel):
    file: str
    reason: str


class CheckReport(BaseModel):
    files_checked: int = 0
    classes_checked: int = 0
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    skipped_files: list[SkippedFile] = Field(default_factory=list)

    @computed_field
    @property
    def failure_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == "failure")

    @computed_field
    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == "warning")

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]
