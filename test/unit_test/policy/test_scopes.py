from __future__ import annotations

from gitlab_mcp.policy.scopes import (
    TOOL_SCOPE_REQUIREMENTS,
    ScopePolicy,
    has_graphql_access,
    has_write_access,
    token_creation_url,
)


def test_any_listed_scope_is_sufficient() -> None:
    policy = ScopePolicy({"manage_x": {"api", "write_repository"}})
    assert not policy.is_tool_available("manage_x", {"read_user"})
    assert policy.is_tool_available("manage_x", {"write_repository"})
    assert policy.is_tool_available("manage_x", ["api", "read_user"])


def test_missing_entry_and_empty_entry_are_allowed() -> None:
    policy = ScopePolicy({"browse_open": set()})
    assert policy.is_tool_available("browse_unlisted", set())
    assert policy.is_tool_available("browse_open", set())
    assert policy.required_scopes("browse_unlisted") is None
    assert policy.required_scopes("browse_open") == frozenset()


def test_available_tools_filters_in_order() -> None:
    policy = ScopePolicy()
    tools = ["browse_files", "manage_files", "manage_project", "custom_tool"]
    assert policy.available_tools(tools, {"read_repository"}) == ["browse_files", "custom_tool"]
    assert policy.available_tools(tools, {"api"}) == tools


def test_default_table_uses_shared_scope_sets() -> None:
    assert TOOL_SCOPE_REQUIREMENTS["manage_files"] == frozenset({"api", "write_repository"})
    assert "read_user" in TOOL_SCOPE_REQUIREMENTS["manage_context"]


def test_access_helpers() -> None:
    assert has_graphql_access({"read_api"})
    assert not has_graphql_access({"read_user", "read_repository"})
    assert has_write_access(["api"])
    assert not has_write_access(["read_api", "write_repository"])


def test_token_creation_url() -> None:
    assert (
        token_creation_url("https://gitlab.example.com/")
        == "https://gitlab.example.com/-/user_settings/personal_access_tokens?name=gitlab-mcp&scopes=api,read_user"
    )
    assert token_creation_url("https://gl.local", ["read_api"]).endswith("scopes=read_api")
