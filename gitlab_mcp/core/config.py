"""
Configuration Settings.

Application configuration bound from environment variables (and an optional
``.env`` file) through Pydantic's ``BaseSettings``.

Policy-related variables:

- ``GITLAB_READ_ONLY_MODE``: hide every tool that mutates remote state
- ``GITLAB_DENIED_TOOLS_REGEX``: hide tools whose name matches
- ``GITLAB_DENIED_ACTIONS``: ``tool:action,tool:action`` pairs removed from tool schemas
- ``GITLAB_CROSS_REFS``: keep ``Related:`` hints in descriptions
- ``GITLAB_TOOL_<NAME>``: replace the description of tool ``<name>``
- ``USE_FILES`` / ``USE_WORKITEMS`` / ``USE_ITERATIONS``: set to ``false`` to leave a provider out
"""

import logging
import os
import re
from typing import Dict, FrozenSet, Literal, Mapping, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DESCRIPTION_OVERRIDE_PREFIX = "GITLAB_TOOL_"


def parse_denied_actions(raw: Optional[str]) -> Dict[str, FrozenSet[str]]:
    """Parse ``tool:action`` pairs into ``{tool: {action, ...}}``.

    Entries are lowercased. Entries without a colon or with an empty side are
    skipped with a warning.
    """
    result: Dict[str, set] = {}
    if not raw:
        return {}
    for entry in raw.split(","):
        entry = entry.strip().lower()
        if not entry:
            continue
        tool, sep, action = entry.partition(":")
        tool, action = tool.strip(), action.strip()
        if not sep or not tool or not action:
            logger.warning(f"Ignoring malformed GITLAB_DENIED_ACTIONS entry: '{entry}'")
            continue
        result.setdefault(tool, set()).add(action)
    return {tool: frozenset(actions) for tool, actions in result.items()}


def load_description_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect ``GITLAB_TOOL_<NAME>`` variables into ``{name: description}``."""
    env = os.environ if environ is None else environ
    overrides: Dict[str, str] = {}
    for key, value in env.items():
        if not key.startswith(DESCRIPTION_OVERRIDE_PREFIX) or not value:
            continue
        tool_name = key[len(DESCRIPTION_OVERRIDE_PREFIX) :].lower()
        if tool_name:
            overrides[tool_name] = value
            logger.debug(f"Description override configured for '{tool_name}'")
    return overrides


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are bound from environment variables by alias.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # GitLab connection
    # =====================================================================
    api_url: str = Field(
        default="https://gitlab.com",
        description="GitLab instance base URL (without /api/v4)",
        alias="GITLAB_API_URL",
    )
    token: Optional[str] = Field(
        default=None,
        description="Personal, project or group access token",
        alias="GITLAB_TOKEN",
    )
    oauth_enabled: bool = Field(
        default=False,
        description="Whether the server runs in OAuth mode",
        alias="GITLAB_OAUTH_ENABLED",
    )
    tier: Optional[str] = Field(
        default=None,
        description="GitLab tier (free, premium, ultimate) when the instance does not report it",
        alias="GITLAB_TIER",
    )

    # =====================================================================
    # Tool filtering
    # =====================================================================
    read_only_mode: bool = Field(
        default=False,
        description="Expose only tools that do not mutate remote state",
        alias="GITLAB_READ_ONLY_MODE",
    )
    cross_refs: bool = Field(
        default=True,
        description="Keep 'Related:' hints in tool descriptions",
        alias="GITLAB_CROSS_REFS",
    )
    denied_tools_regex: Optional[str] = Field(
        default=None,
        description="Regular expression; matching tool names are hidden",
        alias="GITLAB_DENIED_TOOLS_REGEX",
    )
    denied_actions: str = Field(
        default="",
        description="Comma separated 'tool:action' pairs removed from tool schemas",
        alias="GITLAB_DENIED_ACTIONS",
    )
    unknown_tool_policy: Literal["fail_open", "fail_closed"] = Field(
        default="fail_open",
        description="Treatment of tools missing from the availability table",
        alias="GITLAB_UNKNOWN_TOOL_POLICY",
    )
    unknown_tool_min_version: str = Field(
        default="15.0",
        description="Minimum GitLab version at which unknown tools are allowed (fail_open only)",
        alias="GITLAB_UNKNOWN_TOOL_MIN_VERSION",
    )

    schema_mode: Literal["flat", "discriminated"] = Field(
        default="discriminated",
        description="Advertise action tools as a oneOf union or as one merged object schema",
        alias="GITLAB_SCHEMA_MODE",
    )

    # =====================================================================
    # Providers
    # =====================================================================
    use_files: bool = Field(
        default=True,
        description="Register the repository file tools",
        alias="USE_FILES",
    )
    use_workitems: bool = Field(
        default=True,
        description="Register the work item tools",
        alias="USE_WORKITEMS",
    )
    use_iterations: bool = Field(
        default=True,
        description="Register the iteration tools",
        alias="USE_ITERATIONS",
    )

    # =====================================================================
    # Session
    # =====================================================================
    preset: Optional[str] = Field(
        default=None,
        description="Preset applied at startup",
        alias="GITLAB_PRESET",
    )
    profile: Optional[str] = Field(
        default=None,
        description="Active connection profile name",
        alias="GITLAB_PROFILE",
    )

    # =====================================================================
    # Introspection
    # =====================================================================
    introspection_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Timeout in seconds for token introspection requests",
        alias="GITLAB_INTROSPECTION_TIMEOUT",
    )
    expiry_warning_days: int = Field(
        default=7,
        ge=0,
        description="Warn when the token expires within this many days",
        alias="GITLAB_TOKEN_EXPIRY_WARNING_DAYS",
    )
    scope_filter_warning_percent: int = Field(
        default=0,
        ge=0,
        le=100,
        description="Warn when more than this percentage of tools is hidden by token scopes",
        alias="GITLAB_SCOPE_FILTER_WARNING_PERCENT",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="GITLAB_MCP_LOG_LEVEL",
    )

    @field_validator("denied_tools_regex")
    @classmethod
    def _check_regex(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid GITLAB_DENIED_TOOLS_REGEX: {e}") from e
        return value

    def parsed_denied_actions(self) -> Dict[str, FrozenSet[str]]:
        return parse_denied_actions(self.denied_actions)

    @property
    def base_url(self) -> str:
        """Instance URL without trailing slash or ``/api/v4`` suffix."""
        url = self.api_url.rstrip("/")
        if url.endswith("/api/v4"):
            url = url[: -len("/api/v4")]
        return url

    @property
    def host(self) -> str:
        return self.base_url.split("://", 1)[-1].split("/", 1)[0]

    @staticmethod
    def from_env() -> "Settings":
        return Settings()
