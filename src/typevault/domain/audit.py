"""Audit engine: check documents against the resolved schema.

Two-phase discipline: every vault-wide index in :class:`AuditIndices` is
built before the first document is checked, and nothing mutates it
afterwards. Each document's check pipeline reads the shared indices and
writes only to its own issue list, so documents can be audited on a thread
pool while the report order stays stable (sorted by relative path).

Data defects never raise; they become issues. Only engine misuse (an
absolute or non-markdown document path) raises :class:`ValueError`.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from typevault.domain.hierarchy import find_parent_cycle
from typevault.domain.issues import (
    AuditIssue,
    DuplicateListValuesIssue,
    FileAuditResult,
    FormatViolationIssue,
    InvalidDateFormatIssue,
    InvalidListElementIssue,
    InvalidOptionIssue,
    InvalidSourceTypeIssue,
    InvalidTypeIssue,
    IssueCode,
    MissingRequiredIssue,
    OrphanFileIssue,
    OwnedNoteReferencedIssue,
    OwnedWrongLocationIssue,
    ParentCycleIssue,
    SelfReferenceIssue,
    Severity,
    StaleReferenceIssue,
    UnknownFieldIssue,
    WrongDirectoryIssue,
    WrongScalarTypeIssue,
)
from typevault.domain.links import (
    extract_link_targets,
    matches_link_format,
    to_markdown_link,
    to_wikilink,
)
from typevault.domain.matching import find_similar_names, suggest_name, suggest_option
from typevault.domain.ownership import OwnershipIndex, can_reference_owned, owned_child_directory
from typevault.domain.resolver import PARENT_FIELD, ResolvedSchema, ResolvedType
from typevault.domain.schema import FieldDef, FieldPrompt, LinkFormat

# Keys every vault tolerates regardless of schema.
NATIVE_FIELDS = frozenset({"tags", "aliases", "cssclasses", "publish", "type"})

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})[ T]")
_ISOISH_DATE = re.compile(r"^(\d{4})[./-](\d{1,2})[./-](\d{1,2})$")
_NUMBER = re.compile(r"^[+-]?\d+(\.\d+)?$")


@dataclass(frozen=True)
class AuditDocument:
    """One markdown document as seen by the audit.

    Attributes:
        relative_path: POSIX path relative to the vault root.
        frontmatter: Parsed frontmatter, or None when absent.
        parse_error: Parser message when the frontmatter could not be read.
    """

    relative_path: str
    frontmatter: Mapping[str, Any] | None = None
    parse_error: str | None = None

    @property
    def name(self) -> str:
        return posixpath.splitext(posixpath.basename(self.relative_path))[0]

    @property
    def directory(self) -> str:
        return posixpath.dirname(self.relative_path)

    @property
    def path_key(self) -> str:
        """Vault-relative path without the ``.md`` extension."""
        return posixpath.splitext(self.relative_path)[0]


@dataclass(frozen=True)
class AuditIndices:
    """Vault-wide lookups shared by every document check."""

    ownership: OwnershipIndex = field(default_factory=OwnershipIndex)
    note_paths: Mapping[str, str] = field(default_factory=dict)
    note_types: Mapping[str, str] = field(default_factory=dict)
    parent_map: Mapping[str, str] = field(default_factory=dict)
    known_targets: frozenset[str] = frozenset()

    def is_known(self, target: str) -> bool:
        return target in self.known_targets or posixpath.basename(target) in self.known_targets

    def path_for(self, target: str) -> str | None:
        return self.note_paths.get(target) or self.note_paths.get(posixpath.basename(target))

    def type_for(self, target: str) -> str | None:
        return self.note_types.get(target) or self.note_types.get(posixpath.basename(target))


@dataclass(frozen=True)
class AuditOptions:
    """Caller-supplied audit configuration.

    Attributes:
        strict: Report unknown fields as errors instead of warnings.
        allowed_fields: Extra frontmatter keys to tolerate.
        only: Keep only issues with this code.
        ignore: Drop issues with this code.
        workers: Thread-pool width for batch audits (1 = sequential).
    """

    strict: bool = False
    allowed_fields: frozenset[str] = frozenset()
    only: IssueCode | None = None
    ignore: IssueCode | None = None
    workers: int = 1

    def keeps(self, issue: AuditIssue) -> bool:
        if self.only is not None and issue.code != self.only:
            return False
        return self.ignore is None or issue.code != self.ignore


@dataclass(frozen=True)
class _Context:
    schema: ResolvedSchema
    document: AuditDocument
    frontmatter: Mapping[str, Any]
    resolved: ResolvedType
    indices: AuditIndices
    options: AuditOptions

    def present(self) -> list[tuple[str, FieldDef, Any]]:
        """Declared fields that carry a non-empty value in this document."""
        return [
            (name, fdef, self.frontmatter[name])
            for name, fdef in self.resolved.ordered_fields
            if name in self.frontmatter and not is_empty(self.frontmatter[name])
        ]


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def is_empty(value: Any) -> bool:
    """None, a blank string, or an empty list."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list):
        return len(value) == 0
    return False


def _strings(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str) and v.strip()]
    return []


def suggest_iso_date(raw: str) -> str | None:
    """Normalise an ISO-ish date string to ``YYYY-MM-DD`` if unambiguous."""
    text = raw.strip()
    if not text:
        return None
    if _ISO_DATE.match(text):
        return text
    prefix = _ISO_DATE_PREFIX.match(text)
    if prefix:
        return prefix.group(1)
    match = _ISOISH_DATE.match(text)
    if not match:
        return None
    year, month, day = (int(g) for g in match.groups())
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _did_you_mean(suggestion: str | None) -> str:
    return f". Did you mean '{suggestion}'?" if suggestion else ""


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _check_location(ctx: _Context) -> list[AuditIssue]:
    # Owned notes are placed by their owner, see _check_ownership.
    if ctx.document.relative_path in ctx.indices.ownership.owned_notes:
        return []
    expected = ctx.resolved.output_dir
    actual = ctx.document.directory
    if not expected or actual == expected or actual.startswith(f"{expected}/"):
        return []
    return [
        WrongDirectoryIssue(
            severity=Severity.ERROR,
            message=(
                f"Wrong directory: type '{ctx.resolved.name}' expects '{expected}', "
                f"found in '{actual or '.'}'"
            ),
            expected=expected,
            expected_directory=expected,
            actual_directory=actual,
            auto_fixable=True,
        )
    ]


def _check_required(ctx: _Context) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for name, fdef in ctx.resolved.ordered_fields:
        if not fdef.required or not is_empty(ctx.frontmatter.get(name)):
            continue
        has_default = fdef.default is not None
        message = f"Missing required field: {name}"
        if has_default:
            message += f" (default: {fdef.default})"
        issues.append(
            MissingRequiredIssue(
                severity=Severity.ERROR,
                message=message,
                field=name,
                default=fdef.default,
                auto_fixable=has_default,
            )
        )
    return issues


def _check_options(ctx: _Context) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for name, fdef, value in ctx.present():
        if not fdef.options:
            continue
        values = value if isinstance(value, list) else [value]
        for item in values:
            if isinstance(item, (list, dict)):
                continue
            text = str(item)
            if text in fdef.options:
                continue
            suggestion = suggest_option(text, fdef.options)
            issues.append(
                InvalidOptionIssue(
                    severity=Severity.ERROR,
                    message=f"Invalid {name} value: '{text}'{_did_you_mean(suggestion)}",
                    field=name,
                    value=text,
                    expected=list(fdef.options),
                    options=list(fdef.options),
                    suggestion=suggestion,
                )
            )
    return issues


def _check_relation_format(ctx: _Context) -> list[AuditIssue]:
    link_format = ctx.schema.link_format
    convert = to_markdown_link if link_format == LinkFormat.MARKDOWN else to_wikilink
    issues: list[AuditIssue] = []
    for name, fdef, value in ctx.present():
        if not fdef.is_relation:
            continue
        for text in _strings(value):
            if matches_link_format(text, link_format):
                continue
            issues.append(
                FormatViolationIssue(
                    severity=Severity.ERROR,
                    message=f"Field '{name}' should be a {link_format} link",
                    field=name,
                    value=text,
                    expected=str(link_format),
                    expected_format=str(link_format),
                    suggestion=convert(text.strip()),
                    auto_fixable=True,
                )
            )
    return issues


def _relation_targets(ctx: _Context) -> list[tuple[str, FieldDef, str]]:
    return [
        (name, fdef, target)
        for name, fdef, value in ctx.present()
        if fdef.is_relation
        for target in extract_link_targets(value)
    ]


def _check_stale_references(ctx: _Context) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for name, _fdef, target in _relation_targets(ctx):
        if ctx.indices.is_known(target):
            continue
        similar = find_similar_names(target, ctx.indices.known_targets)
        issues.append(
            StaleReferenceIssue(
                severity=Severity.WARNING,
                message=f"Stale reference in '{name}': '{target}' not found",
                field=name,
                value=target,
                suggestion=similar[0] if similar else None,
                target_name=target,
                similar_files=similar,
            )
        )
    return issues


def _check_source_types(ctx: _Context) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for name, fdef, target in _relation_targets(ctx):
        valid = ctx.schema.valid_source_types(fdef.sources)
        if valid is None:
            continue
        actual = ctx.indices.type_for(target)
        if actual is None or actual in valid:
            continue
        sources = fdef.sources
        shown = sources[0] if len(sources) == 1 else " or ".join(sources)
        issues.append(
            InvalidSourceTypeIssue(
                severity=Severity.ERROR,
                message=(
                    f"Type mismatch: '{name}' expects {shown} (or descendant), "
                    f"but '{target}' is {actual}"
                ),
                field=name,
                value=target,
                expected=sorted(valid) if len(valid) > 1 else sources[0],
                suggestion=suggest_option(actual, sorted(valid)) or sources[0],
                target_name=target,
                expected_type=sources[0],
                actual_type=actual,
            )
        )
    return issues


def _check_unknown_fields(ctx: _Context) -> list[AuditIssue]:
    allowed = NATIVE_FIELDS | ctx.options.allowed_fields | set(ctx.schema.audit_config.allowed_extra_fields)
    known = list(ctx.resolved.fields)
    severity = Severity.ERROR if ctx.options.strict else Severity.WARNING
    issues: list[AuditIssue] = []
    for key in ctx.frontmatter:
        key = str(key)
        if key == "type" or key.endswith("-type"):
            continue
        if key in ctx.resolved.fields or key in allowed:
            continue
        suggestion = suggest_name(key, known)
        issues.append(
            UnknownFieldIssue(
                severity=severity,
                message=f"Unknown field: {key}{_did_you_mean(suggestion)}",
                field=key,
                value=ctx.frontmatter.get(key),
                suggestion=suggestion,
            )
        )
    return issues


def _check_ownership(ctx: _Context) -> list[AuditIssue]:
    path = ctx.document.relative_path
    ownership = ctx.indices.ownership
    issues: list[AuditIssue] = []

    info = ownership.owner_of(path)
    if info is not None:
        expected = owned_child_directory(info.owner_path, info.field_name)
        actual = ctx.document.directory
        if actual != expected:
            issues.append(
                OwnedWrongLocationIssue(
                    severity=Severity.ERROR,
                    message=f"Owned note should be in '{expected}' (owned by '{info.owner_path}')",
                    expected=expected,
                    owner_path=info.owner_path,
                    owned_note_path=path,
                    expected_directory=expected,
                    actual_directory=actual,
                    auto_fixable=True,
                )
            )

    for name, fdef, target in _relation_targets(ctx):
        if fdef.owned:
            continue
        target_path = ctx.indices.path_for(target)
        if target_path is None:
            continue
        violation = can_reference_owned(ownership, path, target_path)
        if violation is None:
            continue
        issues.append(
            OwnedNoteReferencedIssue(
                severity=Severity.ERROR,
                message=f"Field '{name}' references owned note '{target}' (owned by '{violation.owner_path}')",
                field=name,
                value=target,
                target_name=target,
                owner_path=violation.owner_path,
                owned_note_path=target_path,
            )
        )
    return issues


def _check_self_reference(ctx: _Context) -> list[AuditIssue]:
    value = ctx.frontmatter.get(PARENT_FIELD)
    if PARENT_FIELD not in ctx.resolved.fields or is_empty(value):
        return []
    doc = ctx.document
    if not any(t in (doc.name, doc.path_key) for t in extract_link_targets(value)):
        return []
    return [
        SelfReferenceIssue(
            severity=Severity.WARNING,
            message="Note references itself as parent",
            field=PARENT_FIELD,
            value=value,
        )
    ]


def _check_parent_cycle(ctx: _Context) -> list[AuditIssue]:
    if not ctx.resolved.recursive:
        return []
    cycle = find_parent_cycle(ctx.document.name, ctx.indices.parent_map)
    # A two-element path is a self-reference, reported separately.
    if cycle is None or len(cycle) <= 2:
        return []
    return [
        ParentCycleIssue(
            severity=Severity.ERROR,
            message=f"Parent cycle detected: {' → '.join(cycle)}",
            field=PARENT_FIELD,
            cycle_path=cycle,
        )
    ]


def _check_scalars(ctx: _Context) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for name, fdef, value in ctx.present():
        if fdef.prompt == FieldPrompt.NUMBER:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                continue
            fixable = isinstance(value, str) and bool(_NUMBER.match(value.strip()))
            kind = "number"
        elif fdef.prompt == FieldPrompt.BOOLEAN:
            if isinstance(value, bool):
                continue
            fixable = isinstance(value, str) and value.strip().lower() in ("true", "false")
            kind = "boolean"
        else:
            continue
        issues.append(
            WrongScalarTypeIssue(
                severity=Severity.ERROR,
                message=f"Field '{name}' should be a {kind}, got {type(value).__name__}",
                field=name,
                value=value,
                expected=kind,
                expected_kind=kind,
                auto_fixable=fixable,
            )
        )
    return issues


def _check_dates(ctx: _Context) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for name, fdef, value in ctx.present():
        if fdef.prompt != FieldPrompt.DATE or not isinstance(value, str):
            continue
        if _ISO_DATE.match(value.strip()):
            continue
        suggestion = suggest_iso_date(value)
        issues.append(
            InvalidDateFormatIssue(
                severity=Severity.ERROR,
                message=f"Field '{name}' is not a YYYY-MM-DD date: '{value}'",
                field=name,
                value=value,
                expected="YYYY-MM-DD",
                suggestion=suggestion,
                auto_fixable=suggestion is not None,
            )
        )
    return issues


def _check_lists(ctx: _Context) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for name, fdef, value in ctx.present():
        if not fdef.is_list_valued:
            continue
        if not isinstance(value, list):
            issues.append(
                InvalidListElementIssue(
                    severity=Severity.WARNING,
                    message=f"Field '{name}' expects a list",
                    field=name,
                    value=value,
                    auto_fixable=True,
                )
            )
            continue
        nested = [item for item in value if isinstance(item, (list, dict))]
        if nested:
            issues.append(
                InvalidListElementIssue(
                    severity=Severity.ERROR,
                    message=f"Field '{name}' contains nested values; quote wikilinks inside lists",
                    field=name,
                    value=value,
                )
            )
        seen: set[str] = set()
        duplicates: list[str] = []
        for item in value:
            if isinstance(item, (list, dict)):
                continue
            text = str(item)
            if text in seen and text not in duplicates:
                duplicates.append(text)
            seen.add(text)
        if duplicates:
            issues.append(
                DuplicateListValuesIssue(
                    severity=Severity.WARNING,
                    message=f"Field '{name}' repeats values: {', '.join(duplicates)}",
                    field=name,
                    value=value,
                    duplicates=duplicates,
                    auto_fixable=True,
                )
            )
    return issues


_CHECKS: tuple[Callable[[_Context], list[AuditIssue]], ...] = (
    _check_location,
    _check_required,
    _check_options,
    _check_relation_format,
    _check_stale_references,
    _check_source_types,
    _check_unknown_fields,
    _check_ownership,
    _check_self_reference,
    _check_parent_cycle,
    _check_scalars,
    _check_dates,
    _check_lists,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _require_relative_markdown(path: str) -> None:
    if path.startswith("/") or posixpath.isabs(path) or not path.endswith(".md"):
        msg = f"Audit documents need a vault-relative markdown path, got {path!r}"
        raise ValueError(msg)


def _resolve_type(schema: ResolvedSchema, document: AuditDocument) -> ResolvedType | AuditIssue:
    if document.parse_error is not None:
        return OrphanFileIssue(
            severity=Severity.ERROR,
            message=f"Failed to parse frontmatter: {document.parse_error}",
        )

    frontmatter = document.frontmatter or {}
    raw_type = frontmatter.get("type")
    if is_empty(raw_type):
        inferred = schema.type_for_directory(document.directory)
        return OrphanFileIssue(
            severity=Severity.ERROR,
            message="No 'type' field in frontmatter",
            field="type",
            suggestion=inferred,
            inferred_type=inferred,
            auto_fixable=inferred is not None,
        )

    resolved = schema.type_for_frontmatter(frontmatter)
    if resolved is not None:
        return resolved
    text = str(raw_type)
    suggestion = suggest_name(text, schema.concrete_type_names())
    return InvalidTypeIssue(
        severity=Severity.ERROR,
        message=f"Invalid type: '{text}'{_did_you_mean(suggestion)}",
        field="type",
        value=text,
        expected=schema.concrete_type_names(),
        suggestion=suggestion,
    )


def audit_document(
    schema: ResolvedSchema,
    document: AuditDocument,
    indices: AuditIndices,
    options: AuditOptions | None = None,
) -> list[AuditIssue]:
    """Return every issue found in *document*.

    A missing or unknown type short-circuits into a single issue; all other
    checks are independent and always run.

    Raises:
        ValueError: if *document* does not carry a vault-relative ``.md`` path.
    """
    _require_relative_markdown(document.relative_path)
    resolved = _resolve_type(schema, document)
    if not isinstance(resolved, ResolvedType):
        return [resolved]

    ctx = _Context(
        schema=schema,
        document=document,
        frontmatter=document.frontmatter or {},
        resolved=resolved,
        indices=indices,
        options=options or AuditOptions(),
    )
    issues: list[AuditIssue] = []
    for check in _CHECKS:
        issues.extend(check(ctx))
    return issues


def audit_documents(
    schema: ResolvedSchema,
    documents: Iterable[AuditDocument],
    indices: AuditIndices,
    options: AuditOptions | None = None,
) -> list[FileAuditResult]:
    """Audit a batch of documents.

    Returns one :class:`FileAuditResult` per document that has issues left
    after the ``only``/``ignore`` filters, sorted by relative path.
    """
    opts = options or AuditOptions()
    docs = sorted(documents, key=lambda d: d.relative_path)

    def run(document: AuditDocument) -> FileAuditResult:
        issues = [i for i in audit_document(schema, document, indices, opts) if opts.keeps(i)]
        return FileAuditResult(relative_path=document.relative_path, issues=issues)

    if opts.workers > 1 and len(docs) > 1:
        with ThreadPoolExecutor(max_workers=opts.workers) as executor:
            results = list(executor.map(run, docs))
    else:
        results = [run(d) for d in docs]

    return sorted((r for r in results if r.issues), key=lambda r: r.relative_path)
