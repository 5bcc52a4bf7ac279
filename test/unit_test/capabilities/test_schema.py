from __future__ import annotations

import pytest
from pydantic import TypeAdapter

from gitlab_mcp.capabilities.schema import (
    ActionBranch,
    DiscriminatedSchema,
    FlatSchema,
    ParameterSchema,
    ParamSpec,
    ParamType,
)
from gitlab_mcp.core.errors import ValidationError


def _flat() -> FlatSchema:
    return FlatSchema(
        params=[
            ParamSpec(name="search", required=True, description="Search term"),
            ParamSpec(name="per_page", type=ParamType.integer),
            ParamSpec(name="visibility", enum=["private", "public"]),
        ]
    )


def _discriminated() -> DiscriminatedSchema:
    return DiscriminatedSchema(
        branches=[
            ActionBranch(
                action="create",
                params=[ParamSpec(name="title", required=True), ParamSpec(name="weight", type=ParamType.integer)],
            ),
            ActionBranch(action="update", params=[ParamSpec(name="iid", type=ParamType.integer, required=True)]),
            ActionBranch(action="delete", params=[ParamSpec(name="iid", type=ParamType.integer, required=True)]),
        ]
    )


def test_flat_json_schema() -> None:
    js = _flat().to_json_schema()
    assert js["type"] == "object"
    assert js["additionalProperties"] is False
    assert js["required"] == ["search"]
    assert js["properties"]["search"] == {"type": "string", "description": "Search term"}
    assert js["properties"]["per_page"] == {"type": "integer"}
    assert js["properties"]["visibility"]["enum"] == ["private", "public"]


def test_discriminated_json_schema_uses_one_of_with_const_tags() -> None:
    js = _discriminated().to_json_schema()
    assert js["discriminator"] == {"propertyName": "action"}
    tags = [v["properties"]["action"]["const"] for v in js["oneOf"]]
    assert tags == ["create", "update", "delete"]
    create = js["oneOf"][0]
    assert create["required"] == ["action", "title"]
    assert set(create["properties"]) == {"action", "title", "weight"}


def test_parameter_schema_selects_variant_by_kind() -> None:
    adapter = TypeAdapter(ParameterSchema)
    assert isinstance(adapter.validate_python({"kind": "flat", "params": []}), FlatSchema)
    parsed = adapter.validate_python({"kind": "discriminated", "branches": [{"action": "list"}]})
    assert isinstance(parsed, DiscriminatedSchema)
    assert parsed.actions() == ("list",)


def test_flat_schema_has_no_actions_and_ignores_denial() -> None:
    schema = _flat()
    assert schema.actions() == ()
    assert schema.without_actions({"search", "create"}) is schema


def test_without_actions_keeps_survivors_in_order() -> None:
    narrowed = _discriminated().without_actions({"delete"})
    assert narrowed is not None
    assert narrowed.actions() == ("create", "update")


def test_without_actions_is_case_insensitive_and_returns_none_when_empty() -> None:
    assert _discriminated().without_actions({"CREATE", "Update", "delete"}) is None


def test_without_actions_returns_same_instance_when_nothing_denied() -> None:
    schema = _discriminated()
    assert schema.without_actions({"archive"}) is schema


def test_without_params_strips_from_every_branch_but_keeps_discriminator() -> None:
    schema = _discriminated().without_params({"weight", "iid", "action"})
    assert schema.param_names() == ("title",)
    assert schema.actions() == ("create", "update", "delete")
    assert "action" in schema.to_json_schema()["oneOf"][1]["required"]


def test_without_params_leaves_original_untouched() -> None:
    original = _flat()
    stripped = original.without_params({"per_page"})
    assert stripped.param_names() == ("search", "visibility")
    assert original.param_names() == ("search", "per_page", "visibility")


def test_flat_validator_accepts_valid_arguments() -> None:
    validator = _flat().build_validator("browse_x")
    assert validator.validate({"search": "gitlab", "per_page": 20}) == {"search": "gitlab", "per_page": 20}


@pytest.mark.parametrize(
    "args",
    [
        {},
        {"search": "x", "unknown": 1},
        {"search": "x", "per_page": "many"},
        {"search": "x", "visibility": "internal"},
        ["search"],
    ],
)
def test_flat_validator_rejects_invalid_arguments(args) -> None:
    validator = _flat().build_validator("browse_x")
    with pytest.raises(ValidationError) as exc:
        validator.validate(args)
    assert exc.value.tool_name == "browse_x"
    assert exc.value.errors


def test_discriminated_validator_dispatches_on_action() -> None:
    validator = _discriminated().build_validator("manage_x")
    assert validator.validate({"action": "create", "title": "t"}) == {"action": "create", "title": "t"}
    assert validator.validate({"action": "delete", "iid": 4}) == {"action": "delete", "iid": 4}


@pytest.mark.parametrize(
    "args",
    [
        {"title": "no action"},
        {"action": "archive"},
        {"action": "update"},
        {"action": "delete", "iid": 1, "title": "belongs to create"},
    ],
)
def test_discriminated_validator_rejects_invalid_arguments(args) -> None:
    with pytest.raises(ValidationError):
        _discriminated().build_validator("manage_x").validate(args)


def test_single_branch_discriminated_schema_validates() -> None:
    schema = DiscriminatedSchema(branches=[ActionBranch(action="show")])
    validator = schema.build_validator("manage_context")
    assert validator.validate({"action": "show"}) == {"action": "show"}
    with pytest.raises(ValidationError):
        validator.validate({"action": "reset"})


def test_parameter_names_shadowing_model_attributes_are_supported() -> None:
    schema = FlatSchema(params=[ParamSpec(name="json"), ParamSpec(name="copy"), ParamSpec(name="model_config")])
    assert schema.build_validator("x").validate({"json": "a", "copy": "b"}) == {"json": "a", "copy": "b"}


def test_flat_rendering_of_flat_schema_is_unchanged() -> None:
    assert _flat().to_flat_json_schema() == _flat().to_json_schema()


def test_flat_rendering_merges_branches() -> None:
    schema = DiscriminatedSchema(
        branches=[
            ActionBranch(
                action="create",
                params=[
                    ParamSpec(name="namespace", required=True, description="Path"),
                    ParamSpec(name="title", required=True, description="Title"),
                ],
            ),
            ActionBranch(
                action="update",
                params=[
                    ParamSpec(name="namespace", required=True, description="Group or project path"),
                    ParamSpec(name="milestone_id", required=True),
                    ParamSpec(name="state_event", enum=["close", "activate"], description="State change"),
                ],
            ),
        ]
    )

    js = schema.to_flat_json_schema()

    assert "oneOf" not in js
    assert js["properties"]["action"]["enum"] == ["create", "update"]
    assert js["required"] == ["action", "namespace"]
    assert js["properties"]["namespace"]["description"] == "Group or project path"
    assert js["properties"]["title"]["description"] == "Title Required for 'create' action(s)."
    assert js["properties"]["milestone_id"]["description"] == "Required for 'update' action(s)."
    assert js["properties"]["state_event"]["enum"] == ["close", "activate"]
    assert js["additionalProperties"] is False


def test_flat_rendering_follows_action_denial() -> None:
    narrowed = _discriminated().without_actions({"create"})
    js = narrowed.to_flat_json_schema()
    assert js["properties"]["action"]["enum"] == ["update", "delete"]
    assert "title" not in js["properties"]
    assert js["required"] == ["action", "iid"]
