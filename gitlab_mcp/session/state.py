"""Mutable session state: active preset, profile and namespace scope."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Mapping, Optional

from .models import Preset, RuntimeScope
from .presets import BUILTIN_PRESETS

logger = logging.getLogger(__name__)


class SessionState:
    """Holds the session selections read by the policy layer at rebuild time."""

    def __init__(
        self,
        presets: Optional[Mapping[str, Preset]] = None,
        *,
        preset: Optional[str] = None,
        profile: Optional[str] = None,
        scope: Optional[RuntimeScope] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._presets: Dict[str, Preset] = dict(BUILTIN_PRESETS if presets is None else presets)
        if preset is not None and preset not in self._presets:
            raise KeyError(f"Unknown preset '{preset}'")
        self._preset_name = preset
        self._profile = profile
        self._scope = scope if scope is not None else self._preset_scope(preset)

    def _preset_scope(self, name: Optional[str]) -> Optional[RuntimeScope]:
        return self._presets[name].scope if name is not None else None

    @property
    def presets(self) -> List[Preset]:
        return list(self._presets.values())

    @property
    def preset_name(self) -> Optional[str]:
        return self._preset_name

    @property
    def active_preset(self) -> Optional[Preset]:
        name = self._preset_name
        return self._presets.get(name) if name is not None else None

    @property
    def profile(self) -> Optional[str]:
        return self._profile

    @property
    def scope(self) -> Optional[RuntimeScope]:
        return self._scope

    def has_preset(self, name: str) -> bool:
        return name in self._presets

    def select_preset(self, name: Optional[str]) -> Optional[Preset]:
        """Activate ``name`` (or no preset) and apply its scope. Raises ``KeyError`` for unknown names."""
        if name is not None and name not in self._presets:
            raise KeyError(f"Unknown preset '{name}'")
        with self._lock:
            self._preset_name = name
            self._scope = self._preset_scope(name)
        logger.info(f"Active preset: {name or '<none>'}")
        return self.active_preset

    def set_scope(self, scope: Optional[RuntimeScope]) -> None:
        with self._lock:
            self._scope = scope
