"""Token scope requirements.

Each entry lists the scopes of which a token needs at least one for the tool
to be usable. Tools without an entry are always allowed; an entry with an empty
set is allowed as well.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urlencode

TOOL_SCOPE_REQUIREMENTS: Dict[str, FrozenSet[str]] = {
    "browse_projects": frozenset({"api", "read_api"}),
    "manage_project": frozenset({"api"}),
    "browse_namespaces": frozenset({"api", "read_api"}),
    "browse_files": frozenset({"api", "read_api", "read_repository"}),
    "manage_files": frozenset({"api", "write_repository"}),
    "browse_work_items": frozenset({"api", "read_api"}),
    "manage_work_item": frozenset({"api"}),
    "browse_iterations": frozenset({"api", "read_api"}),
    "manage_context": frozenset({"api", "read_api", "read_user"}),
}

GRAPHQL_SCOPES: FrozenSet[str] = frozenset({"api", "read_api"})
WRITE_SCOPES: FrozenSet[str] = frozenset({"api"})
RECOMMENDED_SCOPES: Sequence[str] = ("api", "read_user")


class ScopePolicy:
    """Lookup over a tool -> acceptable-scopes table."""

    def __init__(self, requirements: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        source = TOOL_SCOPE_REQUIREMENTS if requirements is None else requirements
        self._requirements: Dict[str, FrozenSet[str]] = {k: frozenset(v) for k, v in source.items()}

    def required_scopes(self, tool: str) -> Optional[FrozenSet[str]]:
        return self._requirements.get(tool)

    def is_tool_available(self, tool: str, scopes: Iterable[str]) -> bool:
        required = self._requirements.get(tool)
        if not required:
            return True
        return not required.isdisjoint(scopes)

    def available_tools(self, tools: Iterable[str], scopes: Iterable[str]) -> List[str]:
        held = frozenset(scopes)
        return [t for t in tools if self.is_tool_available(t, held)]


def has_graphql_access(scopes: Iterable[str]) -> bool:
    return not GRAPHQL_SCOPES.isdisjoint(scopes)


def has_write_access(scopes: Iterable[str]) -> bool:
    return not WRITE_SCOPES.isdisjoint(scopes)


def token_creation_url(base_url: str, scopes: Sequence[str] = RECOMMENDED_SCOPES) -> str:
    """Link to the personal access token form, pre-filled with ``scopes``."""
    query = urlencode({"name": "gitlab-mcp", "scopes": ",".join(scopes)}, safe=",")
    return f"{base_url.rstrip('/')}/-/user_settings/personal_access_tokens?{query}"
