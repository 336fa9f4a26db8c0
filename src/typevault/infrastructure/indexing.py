"""Vault-wide index construction for the audit.

This is the build phase of the audit's build-then-query discipline: every
map is assembled from the full set of loaded documents and frozen into an
:class:`~typevault.domain.audit.AuditIndices` before any document check
runs. Documents are visited in path order, so when two documents share a
name (or two owners claim one note) the first path wins deterministically.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Sequence
from types import MappingProxyType

from typevault.domain.audit import AuditDocument, AuditIndices
from typevault.domain.links import extract_link_targets
from typevault.domain.ownership import OwnedNoteInfo, OwnershipIndex, owned_child_directory
from typevault.domain.resolver import PARENT_FIELD, ResolvedSchema

logger = logging.getLogger(__name__)


def _document_type(schema: ResolvedSchema, document: AuditDocument) -> str | None:
    if document.frontmatter is None:
        return None
    resolved = schema.type_for_frontmatter(document.frontmatter)
    return resolved.name if resolved else None


def build_ownership_index(
    schema: ResolvedSchema,
    documents: Sequence[AuditDocument],
    note_paths: dict[str, str],
) -> OwnershipIndex:
    """Record which notes are owned, and by whom.

    A note is owned when an owner document links it through an owned field,
    or when a note of the field's child type sits in the owner's child
    directory (``<owner dir>/<field name>/``).
    """
    owned: dict[str, OwnedNoteInfo] = {}
    by_owner: dict[str, set[str]] = {}
    types = {d.relative_path: _document_type(schema, d) for d in documents}

    def record(note_path: str, owner_path: str, owner_type: str, field_name: str) -> None:
        if note_path == owner_path:
            return
        existing = owned.get(note_path)
        if existing is not None:
            if existing.owner_path != owner_path:
                logger.debug("%s already owned by %s, ignoring %s", note_path, existing.owner_path, owner_path)
            return
        owned[note_path] = OwnedNoteInfo(
            note_path=note_path,
            owner_path=owner_path,
            owner_type=owner_type,
            field_name=field_name,
        )
        by_owner.setdefault(owner_path, set()).add(note_path)

    for owner in documents:
        owner_type = types[owner.relative_path]
        if owner_type is None or not schema.owns_children(owner_type):
            continue
        frontmatter = owner.frontmatter or {}
        for info in schema.owned_fields(owner_type):
            for target in extract_link_targets(frontmatter.get(info.field_name)):
                target_path = note_paths.get(target) or note_paths.get(posixpath.basename(target))
                if target_path is not None:
                    record(target_path, owner.relative_path, owner_type, info.field_name)

            child_dir = owned_child_directory(owner.relative_path, info.field_name)
            for candidate in documents:
                candidate_type = types[candidate.relative_path]
                if (
                    posixpath.dirname(candidate.relative_path) == child_dir
                    and candidate_type is not None
                    and schema.is_descendant_of(candidate_type, info.child_type)
                ):
                    record(candidate.relative_path, owner.relative_path, owner_type, info.field_name)

    return OwnershipIndex(
        owned_notes=MappingProxyType(owned),
        owner_to_owned=MappingProxyType({k: frozenset(v) for k, v in by_owner.items()}),
    )


def build_indices(schema: ResolvedSchema, documents: Sequence[AuditDocument]) -> AuditIndices:
    """Build every lookup the audit needs from the loaded *documents*."""
    ordered = sorted(documents, key=lambda d: d.relative_path)

    note_paths: dict[str, str] = {}
    note_types: dict[str, str] = {}
    known: set[str] = set()
    for document in ordered:
        note_paths.setdefault(document.name, document.relative_path)
        known.add(document.name)
        known.add(document.path_key)
        type_name = _document_type(schema, document)
        if type_name is not None:
            note_types.setdefault(document.name, type_name)
            note_types.setdefault(document.path_key, type_name)

    parent_map: dict[str, str] = {}
    for document in ordered:
        type_name = _document_type(schema, document)
        resolved = schema.get_type(type_name) if type_name else None
        if resolved is None or not resolved.recursive:
            continue
        targets = extract_link_targets((document.frontmatter or {}).get(PARENT_FIELD))
        if targets:
            parent_map.setdefault(document.name, posixpath.basename(targets[0]))

    ownership = build_ownership_index(schema, ordered, note_paths)
    logger.debug(
        "Built audit indices: %d notes, %d owned, %d parent links",
        len(note_paths),
        len(ownership.owned_notes),
        len(parent_map),
    )
    return AuditIndices(
        ownership=ownership,
        note_paths=MappingProxyType(note_paths),
        note_types=MappingProxyType(note_types),
        parent_map=MappingProxyType(parent_map),
        known_targets=frozenset(known),
    )
