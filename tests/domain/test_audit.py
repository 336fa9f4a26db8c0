"""Tests for the audit engine: per-document checks over vault-wide indices."""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from typevault.domain.audit import (
    AuditDocument,
    AuditOptions,
    audit_document,
    audit_documents,
    is_empty,
    suggest_iso_date,
)
from typevault.domain.issues import IssueCode, Severity
from typevault.domain.resolver import ResolvedSchema
from typevault.infrastructure.indexing import build_indices


def _audit(
    schema: ResolvedSchema,
    notes: dict[str, dict[str, Any] | None],
    options: AuditOptions | None = None,
) -> dict[str, list[Any]]:
    """Audit every note in *notes*; returns issues keyed by path."""
    documents = [AuditDocument(relative_path=p, frontmatter=fm) for p, fm in notes.items()]
    indices = build_indices(schema, documents)
    return {d.relative_path: audit_document(schema, d, indices, options) for d in documents}


def _codes(issues: list[Any]) -> list[str]:
    return [i.code for i in issues]


# ---------------------------------------------------------------------------
# Type resolution
# ---------------------------------------------------------------------------


class TestTypeResolution:
    def test_clean_document(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Tasks/Ship.md": {"type": "task", "status": "done"}})
        assert found["Objectives/Tasks/Ship.md"] == []

    def test_missing_type_is_orphan_with_inferred_type(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Tasks/Ship.md": {"status": "done"}})
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.code == IssueCode.ORPHAN_FILE
        assert issue.message == "No 'type' field in frontmatter"
        assert issue.inferred_type == "task"
        assert issue.auto_fixable

    def test_no_frontmatter_is_orphan(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Loose.md": None})
        (issue,) = found["Loose.md"]
        assert issue.code == IssueCode.ORPHAN_FILE
        assert issue.inferred_type is None
        assert not issue.auto_fixable

    def test_parse_error_is_orphan(self, resolved_schema: ResolvedSchema) -> None:
        document = AuditDocument(relative_path="Broken.md", parse_error="mapping values are not allowed here")
        (issue,) = audit_document(resolved_schema, document, build_indices(resolved_schema, [document]))
        assert issue.code == IssueCode.ORPHAN_FILE
        assert issue.message.startswith("Failed to parse frontmatter")

    def test_unknown_type_suggests_closest(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Tasks/Ship.md": {"type": "tsak", "status": "done"}})
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.code == IssueCode.INVALID_TYPE
        assert issue.suggestion == "task"
        assert "Did you mean 'task'?" in issue.message


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------


class TestRequiredAndOptions:
    def test_missing_required(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Tasks/Ship.md": {"type": "task"}})
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.code == IssueCode.MISSING_REQUIRED
        assert issue.severity == Severity.ERROR
        assert issue.field == "status"
        assert issue.message.startswith("Missing required field: status")
        assert issue.default == "raw"
        assert issue.auto_fixable

    def test_blank_value_counts_as_missing(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Projects/Alpha.md": {"type": "project", "status": "  "}})
        (issue,) = found["Projects/Alpha.md"]
        assert issue.code == IssueCode.MISSING_REQUIRED
        assert not issue.auto_fixable

    def test_invalid_option_with_suggestion(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Tasks/Ship.md": {"type": "task", "status": "don"}})
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.code == IssueCode.INVALID_OPTION
        assert issue.message == "Invalid status value: 'don'. Did you mean 'done'?"
        assert issue.suggestion == "done"
        assert issue.options == ["raw", "backlog", "in-flight", "done"]


class TestLocation:
    def test_wrong_directory(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Ideas/Ship.md": {"type": "task", "status": "done"}})
        (issue,) = found["Ideas/Ship.md"]
        assert issue.code == IssueCode.WRONG_DIRECTORY
        assert issue.expected_directory == "Objectives/Tasks"
        assert issue.actual_directory == "Ideas"

    def test_subdirectory_accepted(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Tasks/2024/Ship.md": {"type": "task", "status": "done"}})
        assert found["Objectives/Tasks/2024/Ship.md"] == []

    def test_inherited_directory_accepted(self, make_schema: Any) -> None:
        schema = make_schema({"epic": {"extends": "objective"}})
        found = _audit(schema, {"Objectives/Launch.md": {"type": "epic", "status": "done"}})
        assert found["Objectives/Launch.md"] == []


class TestRelations:
    def test_format_violation(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {"Objectives/Tasks/Ship.md": {"type": "task", "status": "done", "milestone": "Launch"}},
        )
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.code == IssueCode.FORMAT_VIOLATION
        assert issue.suggestion == "[[Launch]]"
        assert issue.auto_fixable

    def test_stale_reference_lists_similar_files(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Objectives/Tasks/Ship.md": {"type": "task", "status": "done", "milestone": "[[Launch Plam]]"},
                "Objectives/Milestones/Launch Plan.md": {"type": "milestone", "status": "done"},
            },
        )
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.code == IssueCode.STALE_REFERENCE
        assert issue.target_name == "Launch Plam"
        assert issue.severity == Severity.WARNING
        assert issue.suggestion == "Launch Plan"
        assert "Launch Plan" in issue.similar_files

    def test_path_qualified_target_resolves(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Objectives/Tasks/Ship.md": {
                    "type": "task",
                    "status": "done",
                    "milestone": "[[Objectives/Milestones/Launch]]",
                },
                "Objectives/Milestones/Launch.md": {"type": "milestone", "status": "done"},
            },
        )
        assert found["Objectives/Tasks/Ship.md"] == []

    def test_invalid_source_type(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Objectives/Tasks/Ship.md": {"type": "task", "status": "done", "milestone": "[[Other]]"},
                "Objectives/Tasks/Other.md": {"type": "task", "status": "done"},
            },
        )
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.code == IssueCode.INVALID_SOURCE_TYPE
        assert issue.expected_type == "milestone"
        assert issue.actual_type == "task"

    def test_descendant_satisfies_source(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Objectives/Milestones/Child.md": {
                    "type": "milestone",
                    "status": "done",
                    "parent": "[[Top]]",
                },
                "Objectives/Top.md": {"type": "objective", "status": "done"},
            },
        )
        assert found["Objectives/Milestones/Child.md"] == []


class TestUnknownFields:
    NOTE = {"type": "task", "status": "done", "stauts": "x", "tags": ["a"], "note-type": "x"}

    def test_warning_with_suggestion(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Tasks/Ship.md": dict(self.NOTE)})
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.code == IssueCode.UNKNOWN_FIELD
        assert issue.severity == Severity.WARNING
        assert issue.suggestion == "status"

    def test_strict_mode_is_error(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Tasks/Ship.md": dict(self.NOTE)}, AuditOptions(strict=True))
        (issue,) = found["Objectives/Tasks/Ship.md"]
        assert issue.severity == Severity.ERROR

    def test_allowed_fields(self, resolved_schema: ResolvedSchema) -> None:
        options = AuditOptions(allowed_fields=frozenset({"stauts"}))
        found = _audit(resolved_schema, {"Objectives/Tasks/Ship.md": dict(self.NOTE)}, options)
        assert found["Objectives/Tasks/Ship.md"] == []

    def test_schema_allowed_fields(self, make_schema: Any) -> None:
        schema = make_schema(audit={"allowed_extra_fields": ["stauts"]})
        found = _audit(schema, {"Objectives/Tasks/Ship.md": dict(self.NOTE)})
        assert found["Objectives/Tasks/Ship.md"] == []


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


class TestOwnership:
    OWNER = {"type": "project", "status": "active", "research": ["[[Findings]]"]}

    def test_owned_note_in_wrong_location(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {"Projects/Alpha.md": dict(self.OWNER), "Research/Findings.md": {"type": "research"}},
        )
        assert found["Projects/Alpha.md"] == []
        (issue,) = found["Research/Findings.md"]
        assert issue.code == IssueCode.OWNED_WRONG_LOCATION
        assert issue.owner_path == "Projects/Alpha.md"
        assert issue.expected_directory == "Projects/research"

    def test_unrecorded_note_has_no_ownership_issue(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Projects/Alpha.md": {"type": "project", "status": "active"},
                "Research/Findings.md": {"type": "research"},
            },
        )
        assert found["Research/Findings.md"] == []

    def test_owned_note_in_child_directory(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {"Projects/Alpha.md": dict(self.OWNER), "Projects/research/Findings.md": {"type": "research"}},
        )
        assert found["Projects/research/Findings.md"] == []

    def test_child_directory_placement_records_ownership(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Projects/Alpha.md": {"type": "project", "status": "active"},
                "Projects/research/Notes.md": {"type": "research"},
                "Ideas/Spark.md": {"type": "idea", "related": ["[[Notes]]"]},
            },
        )
        assert found["Projects/research/Notes.md"] == []
        assert _codes(found["Ideas/Spark.md"]) == [IssueCode.OWNED_NOTE_REFERENCED]

    def test_owned_note_referenced_by_other(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Projects/Alpha.md": dict(self.OWNER),
                "Projects/research/Findings.md": {"type": "research"},
                "Ideas/Spark.md": {"type": "idea", "related": ["[[Findings]]"]},
            },
        )
        (issue,) = found["Ideas/Spark.md"]
        assert issue.code == IssueCode.OWNED_NOTE_REFERENCED
        assert issue.owner_path == "Projects/Alpha.md"
        assert issue.owned_note_path == "Projects/research/Findings.md"


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------


def _milestone(parent: str) -> dict[str, Any]:
    return {"type": "milestone", "status": "done", "parent": f"[[{parent}]]"}


class TestHierarchy:
    def test_parent_cycle(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Objectives/Milestones/A.md": _milestone("B"),
                "Objectives/Milestones/B.md": _milestone("C"),
                "Objectives/Milestones/C.md": _milestone("A"),
            },
        )
        (issue,) = found["Objectives/Milestones/A.md"]
        assert issue.code == IssueCode.PARENT_CYCLE
        assert issue.cycle_path == ["A", "B", "C", "A"]
        assert issue.message == "Parent cycle detected: A → B → C → A"
        assert _codes(found["Objectives/Milestones/B.md"]) == [IssueCode.PARENT_CYCLE]

    def test_self_reference(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(resolved_schema, {"Objectives/Milestones/A.md": _milestone("A")})
        (issue,) = found["Objectives/Milestones/A.md"]
        assert issue.code == IssueCode.SELF_REFERENCE
        assert issue.severity == Severity.WARNING

    def test_acyclic_chain(self, resolved_schema: ResolvedSchema) -> None:
        found = _audit(
            resolved_schema,
            {
                "Objectives/Milestones/A.md": _milestone("B"),
                "Objectives/Milestones/B.md": {"type": "milestone", "status": "done"},
            },
        )
        assert found["Objectives/Milestones/A.md"] == []


# ---------------------------------------------------------------------------
# Value shapes
# ---------------------------------------------------------------------------


class TestValueShapes:
    def _task(self, schema: ResolvedSchema, **fields: Any) -> list[Any]:
        note = {"type": "task", "status": "done", **fields}
        return _audit(schema, {"Objectives/Tasks/Ship.md": note})["Objectives/Tasks/Ship.md"]

    def test_numbers(self, resolved_schema: ResolvedSchema) -> None:
        assert self._task(resolved_schema, effort=3) == []
        (issue,) = self._task(resolved_schema, effort="3")
        assert issue.code == IssueCode.WRONG_SCALAR_TYPE
        assert issue.auto_fixable
        (issue,) = self._task(resolved_schema, effort="three")
        assert not issue.auto_fixable

    def test_booleans(self, resolved_schema: ResolvedSchema) -> None:
        assert self._task(resolved_schema, blocked=False) == []
        (issue,) = self._task(resolved_schema, blocked="yes")
        assert issue.code == IssueCode.WRONG_SCALAR_TYPE
        assert issue.expected_kind == "boolean"

    def test_dates(self, resolved_schema: ResolvedSchema) -> None:
        assert self._task(resolved_schema, due="2024-01-05") == []
        assert self._task(resolved_schema, due=date(2024, 1, 5)) == []
        (issue,) = self._task(resolved_schema, due="2024/1/5")
        assert issue.code == IssueCode.INVALID_DATE_FORMAT
        assert issue.suggestion == "2024-01-05"

    def test_list_expected(self, resolved_schema: ResolvedSchema) -> None:
        (issue,) = self._task(resolved_schema, labels="urgent")
        assert issue.code == IssueCode.INVALID_LIST_ELEMENT
        assert issue.severity == Severity.WARNING

    def test_nested_list_values(self, resolved_schema: ResolvedSchema) -> None:
        (issue,) = self._task(resolved_schema, labels=[["Alpha"]])
        assert issue.code == IssueCode.INVALID_LIST_ELEMENT
        assert issue.severity == Severity.ERROR

    def test_duplicate_list_values(self, resolved_schema: ResolvedSchema) -> None:
        (issue,) = self._task(resolved_schema, labels=["a", "b", "a"])
        assert issue.code == IssueCode.DUPLICATE_LIST_VALUES
        assert issue.duplicates == ["a"]


# ---------------------------------------------------------------------------
# Batch runs
# ---------------------------------------------------------------------------


NOTES: dict[str, dict[str, Any] | None] = {
    "Objectives/Tasks/Ship.md": {"type": "task", "status": "don", "stauts": "x"},
    "Objectives/Tasks/Clean.md": {"type": "task", "status": "done"},
    "Ideas/Spark.md": {"type": "idea", "related": ["[[Nowhere]]"]},
    "Loose.md": None,
}


def _batch(schema: ResolvedSchema, options: AuditOptions | None = None) -> list[Any]:
    documents = [AuditDocument(relative_path=p, frontmatter=fm) for p, fm in NOTES.items()]
    return audit_documents(schema, documents, build_indices(schema, documents), options)


class TestAuditDocuments:
    def test_sorted_and_clean_files_omitted(self, resolved_schema: ResolvedSchema) -> None:
        results = _batch(resolved_schema)
        assert [r.relative_path for r in results] == [
            "Ideas/Spark.md",
            "Loose.md",
            "Objectives/Tasks/Ship.md",
        ]

    def test_only_filter(self, resolved_schema: ResolvedSchema) -> None:
        results = _batch(resolved_schema, AuditOptions(only=IssueCode.STALE_REFERENCE))
        assert [r.relative_path for r in results] == ["Ideas/Spark.md"]

    def test_ignore_filter(self, resolved_schema: ResolvedSchema) -> None:
        results = _batch(resolved_schema, AuditOptions(ignore=IssueCode.UNKNOWN_FIELD))
        ship = next(r for r in results if r.relative_path == "Objectives/Tasks/Ship.md")
        assert _codes(ship.issues) == [IssueCode.INVALID_OPTION]

    def test_idempotent(self, resolved_schema: ResolvedSchema) -> None:
        assert _batch(resolved_schema) == _batch(resolved_schema)

    def test_thread_pool_matches_sequential(self, resolved_schema: ResolvedSchema) -> None:
        assert _batch(resolved_schema, AuditOptions(workers=4)) == _batch(resolved_schema)

    @pytest.mark.parametrize("path", ["/abs/Ship.md", "Objectives/Tasks/Ship.txt"])
    def test_rejects_bad_paths(self, resolved_schema: ResolvedSchema, path: str) -> None:
        document = AuditDocument(relative_path=path, frontmatter={"type": "task"})
        with pytest.raises(ValueError, match="vault-relative markdown path"):
            audit_document(resolved_schema, document, build_indices(resolved_schema, []))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2024-01-05", "2024-01-05"),
            ("2024-01-05T10:00", "2024-01-05"),
            ("2024/1/5", "2024-01-05"),
            ("2024.02.30", None),
            ("next tuesday", None),
            ("", None),
        ],
    )
    def test_suggest_iso_date(self, raw: str, expected: str | None) -> None:
        assert suggest_iso_date(raw) == expected

    @pytest.mark.parametrize(("value", "empty"), [(None, True), ("", True), (" ", True), ([], True), (0, False)])
    def test_is_empty(self, value: Any, empty: bool) -> None:
        assert is_empty(value) is empty
