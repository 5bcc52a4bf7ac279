"""Token scope detection via ``GET /personal_access_tokens/self``.

Detection never raises. A missing endpoint (404, GitLab < 14.7), a rejected
token (401/403) and network errors all yield ``None``, meaning "scopes unknown".
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from ..core.errors import RemoteApiError
from ..policy.scopes import has_graphql_access, has_write_access
from ..session.connection import TokenScopeInfo, TokenType
from .client import GitLabApiClient

logger = logging.getLogger(__name__)


def classify_token_type(name: Optional[str]) -> TokenType:
    if not name:
        return "personal_access_token"
    if name.startswith("project_"):
        return "project_access_token"
    if name.startswith("group_"):
        return "group_access_token"
    return "personal_access_token"


def days_until_expiry(expires_at: Optional[str], today: Optional[date] = None) -> Optional[int]:
    """Whole days from ``today`` (UTC) until ``expires_at`` (``YYYY-MM-DD``); negative once expired."""
    if not expires_at:
        return None
    try:
        expiry = date.fromisoformat(expires_at[:10])
    except ValueError:
        logger.debug(f"Unparsable token expiry date: {expires_at!r}")
        return None
    current = today or datetime.now(timezone.utc).date()
    return (expiry - current).days


def token_info_from_api(data: Mapping[str, Any], today: Optional[date] = None) -> TokenScopeInfo:
    scopes = [str(s) for s in data.get("scopes") or []]
    expires_at = data.get("expires_at")
    name = data.get("name")
    return TokenScopeInfo(
        name=name,
        scopes=scopes,
        expires_at=expires_at,
        active=bool(data.get("active", True)) and not bool(data.get("revoked", False)),
        token_type=classify_token_type(name),
        has_graphql_access=has_graphql_access(scopes),
        has_write_access=has_write_access(scopes),
        days_until_expiry=days_until_expiry(expires_at, today),
    )


async def detect_token_scopes(
    client: GitLabApiClient,
    *,
    timeout: Optional[float] = None,
    today: Optional[date] = None,
) -> Optional[TokenScopeInfo]:
    """Query the connected token's scopes. ``None`` when they cannot be determined."""
    try:
        data = await client.get_token_self(timeout=timeout)
    except RemoteApiError as e:
        if e.status_code == 404:
            logger.debug("Token self-introspection endpoint not available (GitLab < 14.7 or OAuth token)")
        elif e.status_code in (401, 403):
            logger.info(f"Token self-introspection rejected ({e.status_code}); token may be invalid or expired")
        else:
            logger.debug(f"Token scope detection failed: {e}")
        return None
    if not isinstance(data, Mapping):
        logger.debug(f"Unexpected token self-introspection payload: {type(data).__name__}")
        return None
    info = token_info_from_api(data, today)
    logger.debug(f"Detected token scopes: {info.scopes} (type={info.token_type})")
    return info
