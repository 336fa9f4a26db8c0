"""Schema diffing: compare two raw schema snapshots into a migration plan.

The diff works on raw type declarations, not on the resolved model: an
inherited field showing up on a subtype is not a change to that subtype.
Differences are the output, never an error; only a snapshot that fails
:func:`~typevault.domain.resolver.validate_structure` raises.

Deterministic operations have a total, lossless rewrite rule and can be
applied mechanically. Non-deterministic operations remove or narrow
previously valid data and need a human decision.
"""

from __future__ import annotations

import json
import re
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, computed_field

from typevault.domain.resolver import validate_structure
from typevault.domain.schema import ROOT_TYPE, SchemaDocument

_VERSION = re.compile(r"^(\d+)\.(\d+)\.(\d+)")


class AddField(BaseModel):
    model_config = {"frozen": True}

    op: Literal["add-field"] = "add-field"
    target_type: str
    field: str
    default: Any = None


class RemoveField(BaseModel):
    model_config = {"frozen": True}

    op: Literal["remove-field"] = "remove-field"
    target_type: str
    field: str


class AddType(BaseModel):
    model_config = {"frozen": True}

    op: Literal["add-type"] = "add-type"
    type_name: str


class RemoveType(BaseModel):
    model_config = {"frozen": True}

    op: Literal["remove-type"] = "remove-type"
    type_name: str


class ReparentType(BaseModel):
    model_config = {"frozen": True}

    op: Literal["reparent-type"] = "reparent-type"
    type_name: str
    from_parent: str | None = None
    to_parent: str | None = None


class AddOption(BaseModel):
    model_config = {"frozen": True}

    op: Literal["add-option"] = "add-option"
    target_type: str
    field: str
    value: str


class RemoveOption(BaseModel):
    model_config = {"frozen": True}

    op: Literal["remove-option"] = "remove-option"
    target_type: str
    field: str
    value: str


class ChangeLinkFormat(BaseModel):
    model_config = {"frozen": True}

    op: Literal["change-link-format"] = "change-link-format"
    from_format: str
    to_format: str


MigrationOp = Annotated[
    AddField
    | RemoveField
    | AddType
    | RemoveType
    | ReparentType
    | AddOption
    | RemoveOption
    | ChangeLinkFormat,
    Field(discriminator="op"),
]


class MigrationPlan(BaseModel):
    """The classified difference between two schema snapshots."""

    model_config = {"frozen": True}

    from_version: str
    to_version: str
    deterministic: list[MigrationOp] = Field(default_factory=list)
    non_deterministic: list[MigrationOp] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_changes(self) -> bool:
        return bool(self.deterministic or self.non_deterministic)


# ---------------------------------------------------------------------------
# Diffing
# ---------------------------------------------------------------------------


def _option_ops(
    type_name: str,
    field_name: str,
    old_options: list[str],
    new_options: list[str],
) -> tuple[list[MigrationOp], list[MigrationOp]]:
    old_set, new_set = set(old_options), set(new_options)
    added: list[MigrationOp] = [
        AddOption(target_type=type_name, field=field_name, value=v)
        for v in new_options
        if v not in old_set
    ]
    removed: list[MigrationOp] = [
        RemoveOption(target_type=type_name, field=field_name, value=v)
        for v in old_options
        if v not in new_set
    ]
    return added, removed


def diff_schemas(
    old: SchemaDocument | None,
    new: SchemaDocument,
    from_version: str,
    to_version: str,
) -> MigrationPlan:
    """Compare *old* against *new* and classify every change.

    A missing *old* snapshot (first migration) yields an empty plan.

    Raises:
        SchemaResolutionError: if either snapshot is structurally invalid.
    """
    validate_structure(new)
    if old is None:
        return MigrationPlan(from_version=from_version, to_version=to_version)
    validate_structure(old)

    deterministic: list[MigrationOp] = []
    non_deterministic: list[MigrationOp] = []

    for name in new.types:
        if name not in old.types:
            deterministic.append(AddType(type_name=name))
    for name in old.types:
        if name not in new.types:
            non_deterministic.append(RemoveType(type_name=name))

    for name, old_type in old.types.items():
        new_type = new.types.get(name)
        if new_type is None:
            continue
        if (old_type.extends or ROOT_TYPE) != (new_type.extends or ROOT_TYPE):
            non_deterministic.append(
                ReparentType(type_name=name, from_parent=old_type.extends, to_parent=new_type.extends)
            )

        for field_name, new_field in new_type.fields.items():
            if field_name not in old_type.fields:
                default = new_field.default if new_field.default is not None else new_field.value
                deterministic.append(AddField(target_type=name, field=field_name, default=default))
        for field_name in old_type.fields:
            if field_name not in new_type.fields:
                non_deterministic.append(RemoveField(target_type=name, field=field_name))

        for field_name, old_field in old_type.fields.items():
            new_field = new_type.fields.get(field_name)
            if new_field is None:
                continue
            added, removed = _option_ops(name, field_name, old_field.options or [], new_field.options or [])
            deterministic.extend(added)
            non_deterministic.extend(removed)

    old_format, new_format = old.config.link_format, new.config.link_format
    if old_format != new_format:
        deterministic.append(ChangeLinkFormat(from_format=str(old_format), to_format=str(new_format)))

    return MigrationPlan(
        from_version=from_version,
        to_version=to_version,
        deterministic=deterministic,
        non_deterministic=non_deterministic,
    )


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse ``major.minor.patch``; unparseable input counts as ``1.0.0``."""
    match = _VERSION.match(version or "")
    if not match:
        return 1, 0, 0
    major, minor, patch = (int(g) for g in match.groups())
    return major, minor, patch


def is_valid_version(version: str) -> bool:
    return bool(_VERSION.match(version))


def suggest_version_bump(current: str, plan: MigrationPlan) -> str:
    """Major bump for non-deterministic changes, minor for deterministic ones."""
    major, minor, _patch = parse_version(current)
    if plan.non_deterministic:
        return f"{major + 1}.0.0"
    if plan.deterministic:
        return f"{major}.{minor + 1}.0"
    return current


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


def describe_operation(op: MigrationOp) -> str:
    """One-line human description of a migration operation."""
    if isinstance(op, AddField):
        if op.default is None:
            return f"Add field '{op.field}' to type '{op.target_type}' (no default)"
        return f"Add field '{op.field}' to type '{op.target_type}' (default: {json.dumps(op.default)})"
    if isinstance(op, RemoveField):
        return f"Remove field '{op.field}' from type '{op.target_type}'"
    if isinstance(op, AddType):
        return f"Add type '{op.type_name}'"
    if isinstance(op, RemoveType):
        return f"Remove type '{op.type_name}'"
    if isinstance(op, ReparentType):
        return (
            f"Change parent of '{op.type_name}' from '{op.from_parent or ROOT_TYPE}' "
            f"to '{op.to_parent or ROOT_TYPE}'"
        )
    if isinstance(op, AddOption):
        return f"Add option '{op.value}' to '{op.target_type}.{op.field}'"
    if isinstance(op, RemoveOption):
        return f"Remove option '{op.value}' from '{op.target_type}.{op.field}'"
    return f"Change link format from '{op.from_format}' to '{op.to_format}'"


def format_plan(plan: MigrationPlan) -> str:
    """Multi-line terminal rendering of *plan*."""
    lines: list[str] = []
    if plan.deterministic:
        lines.append("Deterministic changes (can be applied automatically):")
        lines.extend(f"  + {describe_operation(op)}" for op in plan.deterministic)
    if plan.non_deterministic:
        if lines:
            lines.append("")
        lines.append("Non-deterministic changes (require review):")
        lines.extend(f"  - {describe_operation(op)}" for op in plan.non_deterministic)
    if not lines:
        return "No changes detected."
    return "\n".join(lines)
