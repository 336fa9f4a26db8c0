"""Audit issue records.

:data:`AuditIssue` is a tagged union keyed by ``code``: every variant shares
the common attributes of :class:`BaseIssue` and adds only its own payload.
Issue lists validate and serialise through :data:`ISSUE_LIST_ADAPTER`, so a
JSON report round-trips back into the same records.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class IssueCode(StrEnum):
    """Stable machine-readable issue codes."""

    ORPHAN_FILE = "orphan-file"
    INVALID_TYPE = "invalid-type"
    WRONG_DIRECTORY = "wrong-directory"
    MISSING_REQUIRED = "missing-required"
    INVALID_OPTION = "invalid-option"
    FORMAT_VIOLATION = "format-violation"
    STALE_REFERENCE = "stale-reference"
    INVALID_SOURCE_TYPE = "invalid-source-type"
    UNKNOWN_FIELD = "unknown-field"
    OWNED_WRONG_LOCATION = "owned-wrong-location"
    OWNED_NOTE_REFERENCED = "owned-note-referenced"
    PARENT_CYCLE = "parent-cycle"
    SELF_REFERENCE = "self-reference"
    WRONG_SCALAR_TYPE = "wrong-scalar-type"
    INVALID_DATE_FORMAT = "invalid-date-format"
    INVALID_LIST_ELEMENT = "invalid-list-element"
    DUPLICATE_LIST_VALUES = "duplicate-list-values"


class BaseIssue(BaseModel):
    """Attributes shared by every issue variant."""

    model_config = {"frozen": True}

    severity: Severity
    message: str
    field: str | None = None
    value: Any = None
    expected: Any = None
    suggestion: str | None = None
    auto_fixable: bool = False


class OrphanFileIssue(BaseIssue):
    code: Literal["orphan-file"] = "orphan-file"
    inferred_type: str | None = None


class InvalidTypeIssue(BaseIssue):
    code: Literal["invalid-type"] = "invalid-type"


class WrongDirectoryIssue(BaseIssue):
    code: Literal["wrong-directory"] = "wrong-directory"
    expected_directory: str
    actual_directory: str


class MissingRequiredIssue(BaseIssue):
    code: Literal["missing-required"] = "missing-required"
    default: Any = None


class InvalidOptionIssue(BaseIssue):
    code: Literal["invalid-option"] = "invalid-option"
    options: list[str] = Field(default_factory=list)


class FormatViolationIssue(BaseIssue):
    code: Literal["format-violation"] = "format-violation"
    expected_format: str


class StaleReferenceIssue(BaseIssue):
    code: Literal["stale-reference"] = "stale-reference"
    target_name: str
    similar_files: list[str] = Field(default_factory=list)


class InvalidSourceTypeIssue(BaseIssue):
    code: Literal["invalid-source-type"] = "invalid-source-type"
    target_name: str
    expected_type: str
    actual_type: str


class UnknownFieldIssue(BaseIssue):
    code: Literal["unknown-field"] = "unknown-field"


class OwnedWrongLocationIssue(BaseIssue):
    code: Literal["owned-wrong-location"] = "owned-wrong-location"
    owner_path: str
    owned_note_path: str
    expected_directory: str
    actual_directory: str


class OwnedNoteReferencedIssue(BaseIssue):
    code: Literal["owned-note-referenced"] = "owned-note-referenced"
    target_name: str
    owner_path: str
    owned_note_path: str


class ParentCycleIssue(BaseIssue):
    code: Literal["parent-cycle"] = "parent-cycle"
    cycle_path: list[str]


class SelfReferenceIssue(BaseIssue):
    code: Literal["self-reference"] = "self-reference"


class WrongScalarTypeIssue(BaseIssue):
    code: Literal["wrong-scalar-type"] = "wrong-scalar-type"
    expected_kind: str


class InvalidDateFormatIssue(BaseIssue):
    code: Literal["invalid-date-format"] = "invalid-date-format"


class InvalidListElementIssue(BaseIssue):
    code: Literal["invalid-list-element"] = "invalid-list-element"


class DuplicateListValuesIssue(BaseIssue):
    code: Literal["duplicate-list-values"] = "duplicate-list-values"
    duplicates: list[str] = Field(default_factory=list)


AuditIssue = Annotated[
    OrphanFileIssue
    | InvalidTypeIssue
    | WrongDirectoryIssue
    | MissingRequiredIssue
    | InvalidOptionIssue
    | FormatViolationIssue
    | StaleReferenceIssue
    | InvalidSourceTypeIssue
    | UnknownFieldIssue
    | OwnedWrongLocationIssue
    | OwnedNoteReferencedIssue
    | ParentCycleIssue
    | SelfReferenceIssue
    | WrongScalarTypeIssue
    | InvalidDateFormatIssue
    | InvalidListElementIssue
    | DuplicateListValuesIssue,
    Field(discriminator="code"),
]

ISSUE_LIST_ADAPTER: TypeAdapter[list[AuditIssue]] = TypeAdapter(list[AuditIssue])


class FileAuditResult(BaseModel):
    """All issues found in one document."""

    model_config = {"frozen": True}

    relative_path: str
    issues: list[AuditIssue] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.WARNING)


class AuditSummary(BaseModel):
    """Totals across an audit run."""

    model_config = {"frozen": True}

    files_checked: int = 0
    files_with_errors: int = 0
    files_with_warnings: int = 0
    total_errors: int = 0
    total_warnings: int = 0


def summarize(results: list[FileAuditResult], files_checked: int) -> AuditSummary:
    """Aggregate per-file results into an :class:`AuditSummary`."""
    return AuditSummary(
        files_checked=files_checked,
        files_with_errors=sum(1 for r in results if r.error_count),
        files_with_warnings=sum(1 for r in results if r.warning_count),
        total_errors=sum(r.error_count for r in results),
        total_warnings=sum(r.warning_count for r in results),
    )
