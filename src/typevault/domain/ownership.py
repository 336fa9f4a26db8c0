"""Ownership index records and rules.

An owned child note lives under ``<directory of owner note>/<field name>/``
and may be referenced through schema fields only by its owner. The index is
built once per audit run (see :mod:`typevault.infrastructure.indexing`) and
is read-only afterwards.
"""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class OwnedNoteInfo:
    """Where an owned note sits in the ownership tree."""

    note_path: str
    owner_path: str
    owner_type: str
    field_name: str


@dataclass(frozen=True)
class OwnershipIndex:
    """Live ownership state of a vault, keyed by vault-relative paths."""

    owned_notes: Mapping[str, OwnedNoteInfo] = field(default_factory=dict)
    owner_to_owned: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def owner_of(self, note_path: str) -> OwnedNoteInfo | None:
        return self.owned_notes.get(note_path)

    def owned_by(self, owner_path: str) -> frozenset[str]:
        return self.owner_to_owned.get(owner_path, frozenset())


@dataclass(frozen=True)
class OwnershipViolation:
    """A rejected reference or placement."""

    kind: str  # "already_owned" | "referencing_owned"
    note_path: str
    message: str
    owner_path: str


def owned_child_directory(owner_path: str, field_name: str) -> str:
    """Directory where notes owned through *field_name* must live."""
    owner_dir = posixpath.dirname(owner_path)
    return f"{owner_dir}/{field_name}" if owner_dir else field_name


def can_reference_owned(
    index: OwnershipIndex,
    referencing_path: str,
    target_path: str,
) -> OwnershipViolation | None:
    """Check whether *referencing_path* may link to *target_path* via a field.

    Unowned targets are always referenceable; owned targets only by their owner.
    """
    info = index.owned_notes.get(target_path)
    if info is None or info.owner_path == referencing_path:
        return None
    return OwnershipViolation(
        kind="referencing_owned",
        note_path=target_path,
        message=f"Cannot reference owned note '{target_path}': it is owned by '{info.owner_path}'",
        owner_path=info.owner_path,
    )


def validate_new_owned(
    index: OwnershipIndex,
    note_path: str,
    owner_path: str,
) -> OwnershipViolation | None:
    """Reject adopting *note_path* when a different owner already holds it."""
    existing = index.owned_notes.get(note_path)
    if existing is None or existing.owner_path == owner_path:
        return None
    return OwnershipViolation(
        kind="already_owned",
        note_path=note_path,
        message=f"Note '{note_path}' is already owned by '{existing.owner_path}'",
        owner_path=existing.owner_path,
    )
