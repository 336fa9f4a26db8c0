"""AuditService: check vault documents against the resolved schema.

Read-only linter pattern: builds the vault-wide indices, runs the audit
engine over the selected documents, and reports issues grouped per file.
Nothing is ever written back to the vault.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from typevault.domain.audit import AuditDocument, AuditOptions, audit_documents
from typevault.domain.issues import FileAuditResult, IssueCode, Severity, summarize
from typevault.infrastructure.indexing import build_indices
from typevault.services.base import BaseService
from typevault.services.result import ServiceResult
from typevault.services.schema import UNKNOWN_TYPE

if TYPE_CHECKING:
    from typevault.domain.resolver import ResolvedSchema

log = structlog.get_logger(__name__)

INVALID_CODE = "INVALID_ISSUE_CODE"


def _matches_path(document: AuditDocument, pattern: str) -> bool:
    if any(ch in pattern for ch in "*?["):
        return fnmatch.fnmatch(document.relative_path, pattern)
    return pattern in document.relative_path


def _matches_type(schema: ResolvedSchema, document: AuditDocument, type_name: str) -> bool:
    resolved = schema.type_for_frontmatter(document.frontmatter or {})
    if resolved is not None:
        return schema.is_descendant_of(resolved.name, type_name)
    out = schema.types[type_name].output_dir
    return bool(out) and (document.directory == out or document.directory.startswith(f"{out}/"))


def _errors_only(results: Iterable[FileAuditResult]) -> list[FileAuditResult]:
    kept = []
    for result in results:
        errors = [i for i in result.issues if i.severity == Severity.ERROR]
        if errors:
            kept.append(FileAuditResult(relative_path=result.relative_path, issues=errors))
    return kept


class AuditService(BaseService):
    """Handles schema conformance auditing."""

    def audit(
        self,
        *,
        type_name: str | None = None,
        path_pattern: str | None = None,
        strict: bool | None = None,
        only: str | None = None,
        ignore: str | None = None,
        allowed_fields: Iterable[str] = (),
        min_severity: str = "warning",
        workers: int | None = None,
    ) -> ServiceResult:
        """Report schema violations without modifying anything.

        Options left as None fall back to the ``[audit]`` config section.
        """
        schema = self._load_schema("audit")
        if isinstance(schema, ServiceResult):
            return schema

        if type_name is not None and type_name not in schema.concrete_type_names():
            return ServiceResult.failure(
                "audit",
                UNKNOWN_TYPE,
                f"Unknown type: {type_name}",
                available=schema.concrete_type_names(),
            )
        try:
            only_code = IssueCode(only) if only else None
            ignore_code = IssueCode(ignore) if ignore else None
        except ValueError as exc:
            return ServiceResult.failure(
                "audit",
                INVALID_CODE,
                str(exc),
                available=[c.value for c in IssueCode],
            )

        config = self._vault.settings.audit
        options = AuditOptions(
            strict=config.strict if strict is None else strict,
            allowed_fields=frozenset(config.allowed_fields) | frozenset(allowed_fields),
            only=only_code,
            ignore=ignore_code,
            workers=workers or config.workers,
        )

        documents = self._vault.documents()
        indices = build_indices(schema, documents)

        selected = documents
        if type_name is not None:
            selected = [d for d in selected if _matches_type(schema, d, type_name)]
        if path_pattern:
            selected = [d for d in selected if _matches_path(d, path_pattern)]

        results = audit_documents(schema, selected, indices, options)
        if min_severity == Severity.ERROR:
            results = _errors_only(results)
        summary = summarize(results, files_checked=len(selected))

        log.info(
            "audit.complete",
            files_checked=summary.files_checked,
            errors=summary.total_errors,
            warnings=summary.total_warnings,
        )
        return ServiceResult(
            ok=True,
            op="audit",
            data={
                "files": [r.model_dump(mode="json") for r in results],
                "summary": summary.model_dump(),
                "count": summary.total_errors + summary.total_warnings,
            },
        )
