"""Policy snapshots and the sources that produce them.

The registry never reads live state while filtering. At the start of each
rebuild it asks its ``PolicySource`` for one immutable ``PolicySnapshot`` and
evaluates every operation against that value, so a rebuild is consistent even
if settings, presets or token scopes change mid-way.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional, Pattern, Protocol

from ..core.config import Settings, parse_denied_actions
from ..session.connection import ConnectionState
from ..session.state import SessionState
from .availability import AvailabilityPolicy
from .models import InstanceInfo, UnknownToolPolicy
from .scopes import ScopePolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicySnapshot:
    """Every policy input needed to filter the catalog, captured at one instant.

    ``scopes`` and ``instance`` are ``None`` until discovered.
    """

    read_only: bool = False
    denied_tools_regex: Optional[Pattern[str]] = None
    denied_actions: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    instance: Optional[InstanceInfo] = None
    scopes: Optional[FrozenSet[str]] = None
    handshake_pending: bool = False
    description_overrides: Mapping[str, str] = field(default_factory=dict)
    cross_refs: bool = True
    flat_schemas: bool = False
    availability: AvailabilityPolicy = field(default_factory=AvailabilityPolicy)
    scope_policy: ScopePolicy = field(default_factory=ScopePolicy)

    def is_name_denied(self, name: str) -> bool:
        return self.denied_tools_regex is not None and self.denied_tools_regex.search(name) is not None

    def denied_actions_for(self, name: str) -> FrozenSet[str]:
        return self.denied_actions.get(name.lower(), frozenset())


class PolicySource(Protocol):
    """Produce the current policy snapshot."""

    def snapshot(self) -> PolicySnapshot: ...


@dataclass(frozen=True)
class StaticPolicySource(PolicySource):
    """PolicySource that always returns the same snapshot."""

    value: PolicySnapshot = field(default_factory=PolicySnapshot)

    def snapshot(self) -> PolicySnapshot:
        return self.value


def _merge_regex(*patterns: Optional[str]) -> Optional[Pattern[str]]:
    present = [p for p in patterns if p]
    if not present:
        return None
    if len(present) == 1:
        return re.compile(present[0])
    return re.compile("|".join(f"(?:{p})" for p in present))


def _merge_denied_actions(*maps: Mapping[str, FrozenSet[str]]) -> Dict[str, FrozenSet[str]]:
    merged: Dict[str, FrozenSet[str]] = {}
    for m in maps:
        for tool, actions in m.items():
            merged[tool] = merged.get(tool, frozenset()) | actions
    return merged


class RuntimePolicySource(PolicySource):
    """Assemble snapshots from settings, the active preset and the live connection.

    Merge rules:

    1) read-only when either settings or the preset ask for it
    2) a tool is denied when it matches the settings regex or the preset regex
    3) denied actions are the union of settings and preset pairs
    """

    def __init__(
        self,
        settings: Settings,
        connection: ConnectionState,
        session: SessionState,
        *,
        description_overrides: Optional[Mapping[str, str]] = None,
        availability: Optional[AvailabilityPolicy] = None,
        scope_policy: Optional[ScopePolicy] = None,
    ) -> None:
        self._settings = settings
        self._connection = connection
        self._session = session
        self._overrides: Dict[str, str] = dict(description_overrides or {})
        self._availability = availability or AvailabilityPolicy(
            unknown_tool_policy=UnknownToolPolicy(settings.unknown_tool_policy),
            unknown_tool_min_version=settings.unknown_tool_min_version,
        )
        self._scope_policy = scope_policy or ScopePolicy()
        self._settings_denied_actions = settings.parsed_denied_actions()

    @property
    def availability(self) -> AvailabilityPolicy:
        return self._availability

    @property
    def scope_policy(self) -> ScopePolicy:
        return self._scope_policy

    def snapshot(self) -> PolicySnapshot:
        preset = self._session.active_preset
        read_only = self._settings.read_only_mode
        regex = _merge_regex(self._settings.denied_tools_regex)
        denied_actions = self._settings_denied_actions
        if preset is not None:
            read_only = read_only or preset.read_only
            regex = _merge_regex(self._settings.denied_tools_regex, preset.denied_tools_regex)
            denied_actions = _merge_denied_actions(denied_actions, parse_denied_actions(",".join(preset.denied_actions)))

        return PolicySnapshot(
            read_only=read_only,
            denied_tools_regex=regex,
            denied_actions=denied_actions,
            instance=self._connection.instance,
            scopes=self._connection.scopes,
            handshake_pending=self._connection.handshake_pending,
            description_overrides=dict(self._overrides),
            cross_refs=self._settings.cross_refs,
            flat_schemas=self._settings.schema_mode == "flat",
            availability=self._availability,
            scope_policy=self._scope_policy,
        )
