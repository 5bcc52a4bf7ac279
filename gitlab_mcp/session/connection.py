"""Live connection state consumed by the policy layer.

``ConnectionState`` holds what is known about the connected GitLab instance
and credential. Every field is independently optional: before the credential
handshake completes nothing is known, and each piece is filled in as it is
discovered. Updates replace whole values under a lock so readers never see a
half-written state.
"""

from __future__ import annotations

import logging
import threading
from typing import FrozenSet, List, Literal, Optional

from pydantic import Field

from ..core.base import BaseSchema
from ..policy.models import InstanceInfo, Tier

logger = logging.getLogger(__name__)

TokenType = Literal["personal_access_token", "project_access_token", "group_access_token", "oauth", "unknown"]


class TokenScopeInfo(BaseSchema):
    """Scopes and metadata of the connected credential."""

    name: Optional[str] = Field(default=None)
    scopes: List[str] = Field(default_factory=list)
    expires_at: Optional[str] = Field(default=None, description="YYYY-MM-DD, None when the token never expires")
    active: bool = Field(default=True)
    token_type: TokenType = Field(default="unknown")
    has_graphql_access: bool = Field(default=False)
    has_write_access: bool = Field(default=False)
    days_until_expiry: Optional[int] = Field(default=None)

    def scope_set(self) -> FrozenSet[str]:
        return frozenset(self.scopes)


class ConnectionState:
    """Thread-safe holder of instance info, token scopes and handshake status."""

    def __init__(
        self,
        instance: Optional[InstanceInfo] = None,
        token_info: Optional[TokenScopeInfo] = None,
        *,
        handshake_pending: bool = False,
    ) -> None:
        self._lock = threading.Lock()
        self._instance = instance
        self._token_info = token_info
        self._handshake_pending = handshake_pending

    @property
    def instance(self) -> Optional[InstanceInfo]:
        return self._instance

    @property
    def token_info(self) -> Optional[TokenScopeInfo]:
        return self._token_info

    @property
    def scopes(self) -> Optional[FrozenSet[str]]:
        """Known scope set, or ``None`` before detection."""
        info = self._token_info
        return info.scope_set() if info is not None else None

    @property
    def handshake_pending(self) -> bool:
        return self._handshake_pending

    def set_instance(self, version: str, tier: Tier | str) -> InstanceInfo:
        parsed = tier if isinstance(tier, Tier) else Tier.parse(tier)
        if parsed is None:
            logger.debug(f"Unrecognized GitLab tier '{tier}', assuming free")
            parsed = Tier.free
        info = InstanceInfo(version=version, tier=parsed)
        with self._lock:
            self._instance = info
        return info

    def begin_handshake(self) -> None:
        with self._lock:
            self._handshake_pending = True

    def end_handshake(self) -> None:
        with self._lock:
            self._handshake_pending = False

    def replace_token_info(self, info: TokenScopeInfo) -> bool:
        """Store ``info`` and report whether the scope set changed (order-independent)."""
        with self._lock:
            previous = self._token_info
            self._token_info = info
        changed = previous is None or previous.scope_set() != info.scope_set()
        if changed:
            old = sorted(previous.scope_set()) if previous is not None else None
            logger.info(f"Token scopes changed: {old} -> {sorted(info.scope_set())}")
        return changed

    def reset(self) -> None:
        with self._lock:
            self._instance = None
            self._token_info = None
            self._handshake_pending = False
