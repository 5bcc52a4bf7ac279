from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from gitlab_mcp.core.config import Settings, load_description_overrides, parse_denied_actions


def test_parse_denied_actions_groups_and_lowercases() -> None:
    parsed = parse_denied_actions(" Manage_Project:Delete, manage_project:archive ,manage_files:delete")
    assert parsed == {
        "manage_project": frozenset({"delete", "archive"}),
        "manage_files": frozenset({"delete"}),
    }


def test_parse_denied_actions_skips_malformed_entries(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="gitlab_mcp.core.config"):
        parsed = parse_denied_actions("no_colon,:delete,manage_project:,,manage_files:delete")
    assert parsed == {"manage_files": frozenset({"delete"})}
    assert "no_colon" in caplog.text


@pytest.mark.parametrize("raw", [None, "", " , "])
def test_parse_denied_actions_empty(raw) -> None:
    assert parse_denied_actions(raw) == {}


def test_load_description_overrides() -> None:
    env = {
        "GITLAB_TOOL_BROWSE_PROJECTS": "Find projects.",
        "GITLAB_TOOL_MANAGE_FILES": "",
        "GITLAB_TOOL_": "nameless",
        "GITLAB_TOKEN": "glpat-secret",
    }
    assert load_description_overrides(env) == {"browse_projects": "Find projects."}


def test_settings_bind_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITLAB_API_URL", "https://gitlab.example.com/api/v4/")
    monkeypatch.setenv("GITLAB_READ_ONLY_MODE", "true")
    monkeypatch.setenv("GITLAB_CROSS_REFS", "false")
    monkeypatch.setenv("GITLAB_DENIED_ACTIONS", "manage_project:delete")
    monkeypatch.setenv("GITLAB_UNKNOWN_TOOL_POLICY", "fail_closed")
    monkeypatch.setenv("GITLAB_TOKEN_EXPIRY_WARNING_DAYS", "14")

    settings = Settings(_env_file=None)

    assert settings.read_only_mode is True
    assert settings.cross_refs is False
    assert settings.parsed_denied_actions() == {"manage_project": frozenset({"delete"})}
    assert settings.unknown_tool_policy == "fail_closed"
    assert settings.expiry_warning_days == 14
    assert settings.base_url == "https://gitlab.example.com"
    assert settings.host == "gitlab.example.com"


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "GITLAB_API_URL",
        "GITLAB_READ_ONLY_MODE",
        "GITLAB_DENIED_TOOLS_REGEX",
        "GITLAB_CROSS_REFS",
        "GITLAB_SCHEMA_MODE",
        "USE_FILES",
        "USE_WORKITEMS",
        "USE_ITERATIONS",
    ):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None)
    assert settings.api_url == "https://gitlab.com"
    assert settings.read_only_mode is False
    assert settings.cross_refs is True
    assert settings.denied_tools_regex is None
    assert settings.schema_mode == "discriminated"
    assert (settings.use_files, settings.use_workitems, settings.use_iterations) == (True, True, True)


def test_invalid_regex_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, denied_tools_regex="([unclosed")


def test_provider_toggles_and_schema_mode_bind_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("USE_FILES", "false")
    monkeypatch.setenv("USE_ITERATIONS", "false")
    monkeypatch.setenv("GITLAB_SCHEMA_MODE", "flat")
    settings = Settings(_env_file=None)
    assert settings.use_files is False
    assert settings.use_workitems is True
    assert settings.use_iterations is False
    assert settings.schema_mode == "flat"


def test_unknown_schema_mode_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, schema_mode="nested")


def test_base_url_keeps_path_prefix() -> None:
    settings = Settings(_env_file=None, api_url="https://example.com/gitlab/api/v4")
    assert settings.base_url == "https://example.com/gitlab"
    assert settings.host == "example.com"
