"""Session and connection state.

``ContextManager`` lives in :mod:`gitlab_mcp.session.context`; it depends on
the registry and is not re-exported here.
"""

from .connection import ConnectionState, TokenScopeInfo
from .models import Preset, PresetSummary, RuntimeScope, SessionContext
from .presets import BUILTIN_PRESETS
from .state import SessionState

__all__ = [
    "BUILTIN_PRESETS",
    "ConnectionState",
    "Preset",
    "PresetSummary",
    "RuntimeScope",
    "SessionContext",
    "SessionState",
    "TokenScopeInfo",
]
