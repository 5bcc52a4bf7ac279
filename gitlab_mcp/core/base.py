"""Pydantic base schema shared by every model in ``gitlab_mcp``.

Fields are declared in snake_case and serialized with camelCase aliases so
``model_dump(by_alias=True)`` yields the JSON shape MCP clients expect.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


def _to_camel(s: str) -> str:
    """Convert snake_case to camelCase for JSON aliasing."""
    parts = s.split("_")
    return parts[0] + "".join(p.capitalize() or "_" for p in parts[1:])


class BaseSchema(BaseModel):
    """Shared base for all Pydantic models.

    - Rejects unknown fields
    - Accepts either snake_case or camelCase on input
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        alias_generator=_to_camel,
    )
