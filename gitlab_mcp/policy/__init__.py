"""Policy inputs and evaluators.

- ``AvailabilityPolicy``: GitLab version/tier gating of tools and parameters.
- ``ScopePolicy``: token scope requirements per tool.

Snapshots and their sources live in :mod:`gitlab_mcp.policy.provider`, which
depends on session state and is not re-exported here.
"""

from .availability import PARAMETER_REQUIREMENTS, TOOL_REQUIREMENTS, AvailabilityPolicy
from .models import AvailabilityRequirement, InstanceInfo, Tier, UnknownToolPolicy, parse_version
from .scopes import TOOL_SCOPE_REQUIREMENTS, ScopePolicy, token_creation_url

__all__ = [
    "AvailabilityPolicy",
    "AvailabilityRequirement",
    "InstanceInfo",
    "PARAMETER_REQUIREMENTS",
    "ScopePolicy",
    "TOOL_REQUIREMENTS",
    "TOOL_SCOPE_REQUIREMENTS",
    "Tier",
    "UnknownToolPolicy",
    "parse_version",
    "token_creation_url",
]
