"""Tests for SchemaService: list, show, validate."""

from __future__ import annotations

import json

from typevault.infrastructure.vault import Vault
from typevault.services.schema import UNKNOWN_TYPE, SchemaService


class TestListTypes:
    def test_lists_concrete_types(self, vault: Vault) -> None:
        result = SchemaService(vault).list_types()
        assert result.ok
        names = [item["name"] for item in result.data["items"]]
        assert names == ["objective", "task", "milestone", "project", "research", "idea"]
        assert result.data["count"] == 6
        assert result.data["schema_version"] == "1.0.0"

    def test_item_shape(self, vault: Vault) -> None:
        items = {i["name"]: i for i in SchemaService(vault).list_types().data["items"]}
        assert items["task"] == {
            "name": "task",
            "parent": "objective",
            "output_dir": "Objectives/Tasks",
            "fields": 6,
        }


class TestShowType:
    def test_resolved_type(self, vault: Vault) -> None:
        result = SchemaService(vault).show_type("task")
        assert result.ok
        data = result.data
        assert data["ancestors"] == ["objective", "meta"]
        assert data["field_order"][0] == "status"
        status = data["fields"][0]
        assert status["name"] == "status"
        assert status["origin"] == "objective"
        assert status["required"] is True
        assert status["options"] == ["raw", "backlog", "in-flight", "done"]

    def test_ownership_sections(self, vault: Vault) -> None:
        svc = SchemaService(vault)
        assert svc.show_type("research").data["owned_by"] == [
            {"owner_type": "project", "field": "research", "multiple": True}
        ]
        assert svc.show_type("project").data["owns"] == [
            {"field": "research", "child_type": "research", "multiple": True}
        ]

    def test_unknown_type_suggests(self, vault: Vault) -> None:
        result = SchemaService(vault).show_type("tsak")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == UNKNOWN_TYPE
        assert "Did you mean 'task'?" in result.error.message
        assert "task" in result.error.detail["available"]


class TestValidate:
    def test_valid_schema(self, vault: Vault) -> None:
        result = SchemaService(vault).validate()
        assert result.ok
        assert result.data["types"] == 6

    def test_field_order_gaps_warned(self, vault: Vault) -> None:
        schema = json.loads(vault.schema_path.read_text())
        schema["types"]["research"]["fields"]["source"] = {"prompt": "text"}
        schema["types"]["research"]["field_order"] = ["topic"]
        vault.schema_path.write_text(json.dumps(schema))
        result = SchemaService(vault).validate()
        assert result.ok
        assert result.warnings == ["Type 'research' field_order omits: source"]

    def test_structural_error(self, vault: Vault) -> None:
        vault.schema_path.write_text(json.dumps({"types": {"a": {"extends": "b"}}}))
        result = SchemaService(vault).validate()
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "SCHEMA_INVALID"
