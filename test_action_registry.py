from __future__ import annotations

import pytest

from registry.action_registry import ActionRegistry
from registry.catalog import DEFAULT_ACTIONS, build_default_registry
from shared.errors import InvalidArgumentError, RegistryConfigError, UnknownActionError
from shared.models import ActionSpec, ArgumentSpec, ToolCall


def test_default_catalog_has_unique_names_and_mutating_writes():
    registry = build_default_registry()
    assert len(registry) == len(DEFAULT_ACTIONS) == 26

    for spec in DEFAULT_ACTIONS:
        expected = spec.operation in {"add", "update", "delete", "assign", "unassign"}
        assert spec.mutating is expected, spec.name
        if spec.mutating:
            assert spec.key_fields, spec.name


def test_duplicate_action_names_are_rejected():
    spec = ActionSpec(name="showJurusan")
    with pytest.raises(RegistryConfigError):
        ActionRegistry([spec, spec])


def test_lookup_returns_none_for_unknown_and_require_raises():
    registry = build_default_registry()
    assert registry.lookup("dropEverything") is None
    assert registry.lookup("deleteJurusan").mutating is True
    with pytest.raises(UnknownActionError):
        registry.require("dropEverything")


def test_validate_drops_undeclared_arguments():
    registry = build_default_registry()
    call = registry.validate(ToolCall(name="deleteJurusan", args={"name": "Informatics", "force": True}))
    assert call.args == {"name": "Informatics"}


def test_validate_missing_required_argument():
    registry = build_default_registry()
    with pytest.raises(InvalidArgumentError) as exc:
        registry.validate(ToolCall(name="deleteJurusan", args={}))
    assert exc.value.parameter == "name"


def test_validate_null_counts_as_missing():
    registry = build_default_registry()
    with pytest.raises(InvalidArgumentError):
        registry.validate(ToolCall(name="deleteUserByNim", args={"nim": None}))


def test_validate_enum_and_type_errors():
    registry = build_default_registry()
    with pytest.raises(InvalidArgumentError) as exc:
        registry.validate(ToolCall(name="showUsers", args={"role": "admin"}))
    assert "mahasiswa" in str(exc.value)

    with pytest.raises(InvalidArgumentError):
        registry.validate(ToolCall(name="showMataKuliah", args={"semester": "three"}))
    with pytest.raises(InvalidArgumentError):
        registry.validate(ToolCall(name="showMataKuliah", args={"semester": True}))


def test_validate_coerces_integral_floats():
    registry = build_default_registry()
    call = registry.validate(ToolCall(name="showMataKuliah", args={"semester": 3.0}))
    assert call.args == {"semester": 3}
    assert isinstance(call.args["semester"], int)


def test_validate_nested_array_items_report_path():
    registry = build_default_registry()
    with pytest.raises(InvalidArgumentError) as exc:
        registry.validate(
            ToolCall(name="addJurusan", args={"jurusan_data": [{"name": "Sipil"}, {"kode_jurusan": "TE"}]})
        )
    assert exc.value.parameter == "jurusan_data[1].name"


def test_validate_nested_object():
    registry = build_default_registry()
    call = registry.validate(
        ToolCall(
            name="updateJurusan",
            args={"current_name": "Teknik Sipil", "new_data": {"name": "Teknik Sipil Terapan", "extra": 1}},
        )
    )
    assert call.args["new_data"] == {"name": "Teknik Sipil Terapan"}


def test_verify_capability_reports_missing_and_undeclared():
    registry = ActionRegistry(
        [
            ActionSpec(name="showJurusan", operation="show"),
            ActionSpec(name="deleteJurusan", operation="delete", mutating=True),
        ]
    )
    registry.verify_capability(["showJurusan", "deleteJurusan"])

    with pytest.raises(RegistryConfigError) as exc:
        registry.verify_capability(["showJurusan", "dropTable"])
    assert "deleteJurusan" in str(exc.value)
    assert "dropTable" in str(exc.value)


def test_function_declarations_use_gemini_schema_types():
    registry = ActionRegistry(
        [
            ActionSpec(
                name="addThing",
                description="Add things",
                parameters={
                    "items": ArgumentSpec(
                        type="array",
                        required=True,
                        items=ArgumentSpec(
                            type="object",
                            properties={"name": ArgumentSpec(type="string", required=True)},
                        ),
                    ),
                    "level": ArgumentSpec(type="string", enum=["D3", "D4"]),
                },
                mutating=True,
            ),
            ActionSpec(name="ping"),
        ]
    )
    declarations = registry.function_declarations()

    assert declarations[1] == {"name": "ping", "description": ""}
    params = declarations[0]["parameters"]
    assert params["type"] == "OBJECT"
    assert params["required"] == ["items"]
    assert params["properties"]["items"]["type"] == "ARRAY"
    assert params["properties"]["items"]["items"]["properties"]["name"] == {"type": "STRING"}
    assert params["properties"]["items"]["items"]["required"] == ["name"]
    assert params["properties"]["level"]["enum"] == ["D3", "D4"]


def test_catalog_lists_mutating_flag_and_parameters():
    registry = build_default_registry()
    by_name = {item["name"]: item for item in registry.catalog()}
    assert by_name["deleteJurusan"]["mutating"] is True
    assert by_name["deleteJurusan"]["parameters"]["name"] == {"type": "string", "required": True}
    assert by_name["showJurusan"]["parameters"] == {}
