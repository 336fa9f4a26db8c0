"""MigrationService: plan schema migrations against the applied snapshot.

The applied snapshot (``[paths] snapshot_file``) is the schema as it was
when documents were last brought in line with it. Planning compares that
snapshot with the current schema; executing a plan against documents is
outside this tool.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from typevault.domain.migration import (
    describe_operation,
    diff_schemas,
    format_plan,
    is_valid_version,
    suggest_version_bump,
)
from typevault.domain.resolver import SchemaResolutionError, validate_structure
from typevault.infrastructure.schema_store import SchemaLoadError
from typevault.services.base import BaseService
from typevault.services.result import ServiceResult

log = structlog.get_logger(__name__)

INVALID_VERSION = "INVALID_VERSION"
SNAPSHOT_NOT_FOUND = "SNAPSHOT_NOT_FOUND"
DEFAULT_VERSION = "1.0.0"


class MigrationService(BaseService):
    """Handles schema migration planning."""

    def diff(self, *, against: Path | None = None, to_version: str | None = None) -> ServiceResult:
        """Compare the applied snapshot (or *against*) with the current schema."""
        op = "migrate_diff"
        if against is not None and not against.is_file():
            return ServiceResult.failure(op, SNAPSHOT_NOT_FOUND, f"Schema snapshot not found: {against}")
        try:
            current = self._vault.schema_document()
            previous = self._vault.load_snapshot(against)
        except SchemaLoadError as exc:
            return self._schema_failure(op, exc)

        from_version = (previous.schema_version if previous else None) or DEFAULT_VERSION
        if to_version is not None and not is_valid_version(to_version):
            return ServiceResult.failure(
                op,
                INVALID_VERSION,
                f"Invalid version '{to_version}': expected MAJOR.MINOR.PATCH",
            )

        try:
            plan = diff_schemas(
                previous,
                current,
                from_version,
                to_version or current.schema_version or from_version,
            )
        except SchemaResolutionError as exc:
            return self._schema_failure(op, exc)

        warnings: list[str] = []
        if previous is None:
            warnings.append("No applied schema snapshot found; nothing to compare against.")

        suggested = suggest_version_bump(from_version, plan)
        log.info(
            "migrate.diff",
            deterministic=len(plan.deterministic),
            non_deterministic=len(plan.non_deterministic),
            suggested_version=suggested,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "plan": plan.model_dump(mode="json"),
                "suggested_version": suggested,
                "deterministic": [describe_operation(o) for o in plan.deterministic],
                "non_deterministic": [describe_operation(o) for o in plan.non_deterministic],
                "summary": format_plan(plan),
            },
            warnings=warnings,
        )

    def snapshot(self) -> ServiceResult:
        """Record the current schema as the applied baseline."""
        op = "migrate_snapshot"
        try:
            validate_structure(self._vault.schema_document())
            path = self._vault.write_snapshot()
        except (SchemaLoadError, SchemaResolutionError) as exc:
            return self._schema_failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"path": str(path)})
