"""Session-level value types: presets and the runtime namespace scope."""

from __future__ import annotations

import re
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from ..core.base import BaseSchema


class RuntimeScope(BaseSchema):
    """Namespace the session is focused on."""

    type: Literal["project", "group"] = Field(..., description="Kind of namespace")
    path: str = Field(..., min_length=1, description="Full path, e.g. 'my-group/my-project'")
    include_subgroups: bool = Field(default=True)
    detected: bool = Field(default=False, description="True when the type was inferred from the path")


class Preset(BaseSchema):
    """Named bundle of filtering options selectable at runtime."""

    name: str = Field(..., min_length=1)
    description: str = Field(default="")
    read_only: bool = Field(default=False)
    denied_tools_regex: Optional[str] = Field(default=None)
    denied_actions: List[str] = Field(default_factory=list, description="'tool:action' pairs")
    scope: Optional[RuntimeScope] = Field(default=None)

    @field_validator("denied_tools_regex")
    @classmethod
    def _check_regex(cls, value: Optional[str]) -> Optional[str]:
        if value:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid denied_tools_regex: {e}") from e
        return value or None


class PresetSummary(BaseSchema):
    name: str
    description: str
    read_only: bool
    active: bool


class SessionContext(BaseSchema):
    """Snapshot of the runtime context returned by ``manage_context show``."""

    host: str
    api_url: str
    read_only_mode: bool
    oauth_enabled: bool
    preset: Optional[str] = None
    preset_description: Optional[str] = None
    profile: Optional[str] = None
    scope: Optional[RuntimeScope] = None
