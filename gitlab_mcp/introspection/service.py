"""Credential introspection and dynamic refresh.

``CredentialIntrospector.refresh_token_scopes`` re-queries the token's scopes
and, when the set changed, rebuilds the registry and sends one
``tools/list_changed`` notification. Refreshes are serialized by an
``asyncio.Lock``; registry readers are never blocked because the rebuild
publishes a new snapshot with a single swap.

``whoami`` performs a refresh first, then aggregates identity, token, server,
capability and session information plus threshold-derived warnings and
recommendations. Every remote failure degrades to missing data.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import List, Optional

from ..capabilities.events import ChangeNotifier
from ..capabilities.pipeline import FilterStatistics
from ..capabilities.registry import CapabilityRegistry
from ..core.config import Settings
from ..core.errors import RemoteApiError
from ..policy.scopes import token_creation_url
from ..session.connection import ConnectionState, TokenScopeInfo
from ..session.state import SessionState
from .client import GitLabApiClient
from .detector import detect_token_scopes
from .models import (
    CapabilitiesInfo,
    ContextInfo,
    Recommendation,
    ServerInfo,
    TokenInfo,
    UserInfo,
    WhoamiResult,
)

logger = logging.getLogger(__name__)

BROWSE_SCOPES = frozenset({"api", "read_api", "read_user"})


class CredentialIntrospector:
    """Detect token scope changes and answer ``whoami``."""

    def __init__(
        self,
        settings: Settings,
        client: GitLabApiClient,
        connection: ConnectionState,
        registry: CapabilityRegistry,
        notifier: ChangeNotifier,
        session: SessionState,
    ) -> None:
        self._settings = settings
        self._client = client
        self._connection = connection
        self._registry = registry
        self._notifier = notifier
        self._session = session
        self._lock = asyncio.Lock()

    async def refresh_token_scopes(self, *, today: Optional[date] = None) -> bool:
        """
        Re-detect token scopes.

        Returns:
            True when the scope set changed (the registry was rebuilt and one
            notification sent), False otherwise, including on detection failure.
        """
        async with self._lock:
            try:
                info = await detect_token_scopes(
                    self._client, timeout=self._settings.introspection_timeout, today=today
                )
            except Exception as e:
                logger.warning(f"Token scope refresh failed, keeping current scopes: {e}")
                return False
            if info is None:
                logger.debug("Token scope refresh: scopes could not be determined, keeping current state")
                return False
            if not self._connection.replace_token_info(info):
                return False
            stats = self._registry.rebuild()
            logger.info(
                f"Token scopes refreshed: {stats.available}/{stats.total} tools available "
                f"({stats.filtered_by_scopes} hidden by scopes)"
            )
            await self._notifier.notify()
            return True

    async def _fetch_user(self) -> Optional[UserInfo]:
        try:
            data = await self._client.get_current_user(timeout=self._settings.introspection_timeout)
        except RemoteApiError as e:
            logger.debug(f"Could not fetch current user: {e}")
            return None
        if not isinstance(data, dict):
            return None
        try:
            return UserInfo.model_validate(
                {k: data.get(k) for k in ("id", "username", "name", "email", "avatar_url", "is_admin", "state")}
            )
        except ValueError as e:
            logger.debug(f"Unexpected /user payload: {e}")
            return None

    async def whoami(self, *, today: Optional[date] = None) -> WhoamiResult:
        scopes_refreshed = await self.refresh_token_scopes(today=today)
        user = await self._fetch_user()

        token = self._token_info(self._connection.token_info, user)
        server = self._server_info()
        capabilities = self._capabilities(self._connection.token_info, self._registry.filter_statistics())
        context = ContextInfo(
            active_preset=self._session.preset_name,
            active_profile=self._session.profile,
            scope=self._session.scope,
        )
        return WhoamiResult(
            user=user,
            token=token,
            server=server,
            capabilities=capabilities,
            context=context,
            warnings=self.warnings(token, capabilities),
            recommendations=self.recommendations(token, capabilities, server),
            scopes_refreshed=scopes_refreshed,
        )

    def _token_info(self, info: Optional[TokenScopeInfo], user: Optional[UserInfo]) -> TokenInfo:
        if info is None:
            return TokenInfo(
                valid=user is not None,
                type="oauth" if self._settings.oauth_enabled else "unknown",
            )
        return TokenInfo(
            valid=info.active,
            type=info.token_type,
            name=info.name,
            scopes=list(info.scopes),
            expires_at=info.expires_at,
            days_until_expiry=info.days_until_expiry,
            has_graphql_access=info.has_graphql_access,
            has_write_access=info.has_write_access,
        )

    def _server_info(self) -> ServerInfo:
        instance = self._connection.instance
        return ServerInfo(
            host=self._settings.host,
            api_url=f"{self._settings.base_url}/api/v4",
            version=instance.version if instance else "unknown",
            tier=instance.tier.value if instance else "unknown",
            read_only_mode=self._registry.snapshot().policy.read_only,
            oauth_enabled=self._settings.oauth_enabled,
        )

    @staticmethod
    def _capabilities(info: Optional[TokenScopeInfo], stats: FilterStatistics) -> CapabilitiesInfo:
        can_browse = info is None or not info.scopes or not BROWSE_SCOPES.isdisjoint(info.scopes)
        return CapabilitiesInfo(
            can_browse=can_browse,
            can_manage=info.has_write_access if info else False,
            can_access_graphql=info.has_graphql_access if info else False,
            available_tool_count=stats.available,
            total_tool_count=stats.total,
            filtered_by_scopes=stats.filtered_by_scopes,
            filtered_by_read_only=stats.filtered_by_read_only,
            filtered_by_tier=stats.filtered_by_tier,
            filtered_by_denied_regex=stats.filtered_by_denied_regex,
            filtered_by_action_denial=stats.filtered_by_action_denial,
        )

    def warnings(self, token: TokenInfo, capabilities: CapabilitiesInfo) -> List[str]:
        warnings: List[str] = []

        days = token.days_until_expiry
        if days is not None:
            if days < 0:
                warnings.append(f"Token has expired ({abs(days)} days ago)")
            elif days == 0:
                warnings.append("Token expires today!")
            elif days <= self._settings.expiry_warning_days:
                warnings.append(f"Token expires in {days} day(s)")

        if not token.valid:
            warnings.append("Token is invalid or revoked - authentication may fail")

        if capabilities.filtered_by_scopes > 0 and capabilities.total_tool_count > 0:
            pct = round(capabilities.filtered_by_scopes / capabilities.total_tool_count * 100)
            if pct >= self._settings.scope_filter_warning_percent:
                warnings.append(
                    f"Limited token scopes: {capabilities.available_tool_count} of "
                    f"{capabilities.total_tool_count} tools available ({pct}% filtered)"
                )
                if not capabilities.can_access_graphql:
                    warnings.append("No GraphQL access - project/MR/issue operations unavailable")
                if not capabilities.can_manage:
                    warnings.append("No write access - all manage_* operations blocked")

        if capabilities.filtered_by_read_only > 0:
            warnings.append(f"Read-only mode enabled: {capabilities.filtered_by_read_only} write tools disabled")
        if capabilities.filtered_by_tier > 0:
            warnings.append(
                f"GitLab tier restrictions: {capabilities.filtered_by_tier} tools unavailable for current tier"
            )
        if capabilities.filtered_by_denied_regex > 0:
            warnings.append(
                f"Tool access restrictions: {capabilities.filtered_by_denied_regex} tools blocked by configuration"
            )
        return warnings

    def recommendations(
        self, token: TokenInfo, capabilities: CapabilitiesInfo, server: ServerInfo
    ) -> List[Recommendation]:
        url = token_creation_url(self._settings.base_url)
        recs: List[Recommendation] = []

        days = token.days_until_expiry
        if days is not None and days < 0:
            recs.append(
                Recommendation(
                    action="renew_token",
                    message="Your token has expired. Create a new token to restore access.",
                    url=url,
                    priority="high",
                )
            )
        elif days is not None and days <= self._settings.expiry_warning_days:
            recs.append(
                Recommendation(
                    action="renew_token",
                    message=f"Your token expires in {days} day(s). Renew soon to avoid service interruption.",
                    url=url,
                    priority="medium",
                )
            )

        needs_new_token = capabilities.filtered_by_scopes > 0 and not capabilities.can_manage
        if needs_new_token:
            recs.append(
                Recommendation(
                    action="create_new_token",
                    message="Create a token with 'api' scope for full GitLab functionality",
                    url=url,
                    priority="high",
                )
            )
        elif not capabilities.can_access_graphql and token.scopes:
            recs.append(
                Recommendation(
                    action="add_scope",
                    message="Add 'api' or 'read_api' scope to enable project, issue, and MR operations",
                    url=url,
                    priority="high",
                )
            )

        if capabilities.filtered_by_tier > 0 and server.tier == "free":
            recs.append(
                Recommendation(
                    action="contact_admin",
                    message="Some features require GitLab Premium or Ultimate. Contact your administrator for tier upgrade.",
                    priority="low",
                )
            )
        return recs
