"""Result models of the ``whoami`` introspection."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from ..core.base import BaseSchema
from ..session.connection import TokenType
from ..session.models import RuntimeScope


class UserInfo(BaseSchema):
    id: int
    username: str
    name: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    is_admin: Optional[bool] = None
    state: Optional[str] = None


class TokenInfo(BaseSchema):
    valid: bool
    type: TokenType = "unknown"
    name: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    expires_at: Optional[str] = None
    days_until_expiry: Optional[int] = None
    has_graphql_access: bool = False
    has_write_access: bool = False


class ServerInfo(BaseSchema):
    host: str
    api_url: str
    version: str = "unknown"
    tier: str = "unknown"
    read_only_mode: bool = False
    oauth_enabled: bool = False


class CapabilitiesInfo(BaseSchema):
    can_browse: bool
    can_manage: bool
    can_access_graphql: bool = Field(alias="canAccessGraphQL")
    available_tool_count: int
    total_tool_count: int
    filtered_by_scopes: int = 0
    filtered_by_read_only: int = 0
    filtered_by_tier: int = 0
    filtered_by_denied_regex: int = 0
    filtered_by_action_denial: int = 0


class ContextInfo(BaseSchema):
    active_preset: Optional[str] = None
    active_profile: Optional[str] = None
    scope: Optional[RuntimeScope] = None


class Recommendation(BaseSchema):
    action: Literal["renew_token", "create_new_token", "add_scope", "contact_admin"]
    message: str
    url: Optional[str] = None
    priority: Literal["high", "medium", "low"]


class WhoamiResult(BaseSchema):
    user: Optional[UserInfo] = None
    token: TokenInfo
    server: ServerInfo
    capabilities: CapabilitiesInfo
    context: ContextInfo
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    scopes_refreshed: bool = False
