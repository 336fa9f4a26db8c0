"""SchemaService: introspection of the resolved type model."""

from __future__ import annotations

from typing import Any

from typevault.domain.matching import suggest_name
from typevault.domain.resolver import ResolvedSchema, ResolvedType
from typevault.services.base import BaseService
from typevault.services.result import ServiceResult

UNKNOWN_TYPE = "UNKNOWN_TYPE"


def _field_payload(resolved: ResolvedType) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for name, fdef in resolved.ordered_fields:
        row: dict[str, Any] = {
            "name": name,
            "kind": fdef.kind,
            "required": fdef.required,
            "origin": resolved.field_origins.get(name, resolved.name),
        }
        if fdef.default is not None:
            row["default"] = fdef.default
        if fdef.value is not None:
            row["value"] = fdef.value
        if fdef.options:
            row["options"] = list(fdef.options)
        if fdef.sources:
            row["source"] = fdef.sources
        if fdef.multiple:
            row["multiple"] = True
        if fdef.owned:
            row["owned"] = True
        rows.append(row)
    return rows


def _type_payload(schema: ResolvedSchema, resolved: ResolvedType) -> dict[str, Any]:
    return {
        "name": resolved.name,
        "parent": resolved.parent,
        "ancestors": list(resolved.ancestors),
        "children": list(resolved.children),
        "output_dir": resolved.output_dir,
        "plural": resolved.plural,
        "recursive": resolved.recursive,
        "field_order": list(resolved.field_order),
        "fields": _field_payload(resolved),
        "body_sections": [s.title for s in resolved.body_sections],
        "owned_by": [
            {"owner_type": o.owner_type, "field": o.field_name, "multiple": o.multiple}
            for o in schema.owner_types(resolved.name)
        ],
        "owns": [
            {"field": f.field_name, "child_type": f.child_type, "multiple": f.multiple}
            for f in schema.owned_fields(resolved.name)
        ],
    }


class SchemaService(BaseService):
    """Read-only queries against the vault schema."""

    def list_types(self) -> ServiceResult:
        """List every concrete type with its parent and storage directory."""
        schema = self._load_schema("schema_list")
        if isinstance(schema, ServiceResult):
            return schema
        items = []
        for name in schema.concrete_type_names():
            resolved = schema.types[name]
            items.append(
                {
                    "name": name,
                    "parent": resolved.parent,
                    "output_dir": resolved.output_dir,
                    "fields": len(resolved.fields),
                }
            )
        return ServiceResult(
            ok=True,
            op="schema_list",
            data={"items": items, "count": len(items), "schema_version": schema.schema_version},
        )

    def show_type(self, name: str) -> ServiceResult:
        """Describe one resolved type in full."""
        schema = self._load_schema("schema_show")
        if isinstance(schema, ServiceResult):
            return schema
        resolved = schema.get_type(name)
        if resolved is None:
            suggestion = suggest_name(name, schema.concrete_type_names())
            message = f"Unknown type: {name}"
            if suggestion:
                message += f". Did you mean '{suggestion}'?"
            return ServiceResult.failure(
                "schema_show",
                UNKNOWN_TYPE,
                message,
                available=schema.concrete_type_names(),
            )
        return ServiceResult(ok=True, op="schema_show", data=_type_payload(schema, resolved))

    def validate(self) -> ServiceResult:
        """Load and resolve the schema, reporting structural errors."""
        schema = self._load_schema("schema_validate")
        if isinstance(schema, ServiceResult):
            return schema
        warnings: list[str] = []
        for name in schema.concrete_type_names():
            resolved = schema.types[name]
            missing = [n for n in resolved.fields if n not in resolved.field_order]
            if missing:
                warnings.append(f"Type '{name}' field_order omits: {', '.join(missing)}")
        return ServiceResult(
            ok=True,
            op="schema_validate",
            data={
                "path": str(self._vault.schema_path),
                "types": len(schema.concrete_type_names()),
                "schema_version": schema.schema_version,
            },
            warnings=warnings,
        )
