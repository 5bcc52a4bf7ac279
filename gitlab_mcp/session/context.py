"""Runtime context management behind the ``manage_context`` tool.

Switching the preset changes policy inputs, so it rebuilds the registry and
sends one ``tools/list_changed`` notification. Setting the namespace scope only
changes defaults used by handlers and does not touch the catalog.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..capabilities.events import ChangeNotifier
from ..capabilities.registry import CapabilityRegistry
from ..core.config import Settings
from ..core.errors import ValidationError
from .models import PresetSummary, RuntimeScope, SessionContext
from .state import SessionState

logger = logging.getLogger(__name__)

TOOL_NAME = "manage_context"


class ContextManager:
    """Inspect and change the session's preset and namespace scope."""

    def __init__(
        self,
        settings: Settings,
        state: SessionState,
        registry: CapabilityRegistry,
        notifier: ChangeNotifier,
    ) -> None:
        self._settings = settings
        self._state = state
        self._registry = registry
        self._notifier = notifier
        self._initial_preset = state.preset_name

    @property
    def state(self) -> SessionState:
        return self._state

    def get_context(self) -> SessionContext:
        preset = self._state.active_preset
        return SessionContext(
            host=self._settings.host,
            api_url=f"{self._settings.base_url}/api/v4",
            read_only_mode=self._settings.read_only_mode or bool(preset and preset.read_only),
            oauth_enabled=self._settings.oauth_enabled,
            preset=preset.name if preset else None,
            preset_description=preset.description if preset else None,
            profile=self._state.profile,
            scope=self._state.scope,
        )

    def list_presets(self) -> List[PresetSummary]:
        active = self._state.preset_name
        return [
            PresetSummary(name=p.name, description=p.description, read_only=p.read_only, active=p.name == active)
            for p in self._state.presets
        ]

    async def switch_preset(self, name: str) -> SessionContext:
        """Activate preset ``name``, rebuild the catalog and notify listeners."""
        if not self._state.has_preset(name):
            available = ", ".join(p.name for p in self._state.presets)
            raise ValidationError(TOOL_NAME, f"Unknown preset '{name}'. Available presets: {available}")
        if name == self._state.preset_name:
            return self.get_context()
        self._state.select_preset(name)
        await self._apply_policy_change()
        return self.get_context()

    def set_scope(
        self,
        namespace: str,
        include_subgroups: bool = True,
        scope_type: Optional[str] = None,
    ) -> RuntimeScope:
        """Focus the session on ``namespace``.

        Without ``scope_type``, paths containing ``/`` are treated as projects
        and single-segment paths as groups.
        """
        path = namespace.strip().strip("/")
        if not path:
            raise ValidationError(TOOL_NAME, "namespace must not be empty")
        scope = RuntimeScope(
            type=scope_type or ("project" if "/" in path else "group"),
            path=path,
            include_subgroups=include_subgroups,
            detected=scope_type is None,
        )
        self._state.set_scope(scope)
        logger.info(f"Session scope set to {scope.type} '{scope.path}'")
        return scope

    async def reset(self) -> SessionContext:
        """Restore the startup preset and clear any runtime scope."""
        changed = self._state.preset_name != self._initial_preset
        self._state.select_preset(self._initial_preset)
        if changed:
            await self._apply_policy_change()
        return self.get_context()

    async def _apply_policy_change(self) -> None:
        stats = self._registry.rebuild()
        logger.info(f"Policy changed: {stats.available}/{stats.total} tools available")
        await self._notifier.notify()

