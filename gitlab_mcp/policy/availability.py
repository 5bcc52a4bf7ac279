"""Version and tier gating.

``TOOL_REQUIREMENTS`` maps tool names to the minimum GitLab version and tier
they need. ``PARAMETER_REQUIREMENTS`` gates individual parameters: a tool stays
available but loses the parameters the instance cannot serve.

``AvailabilityPolicy`` evaluates both tables. It never raises: an undetermined
instance is reported as "not yet connected" and excluded, unless the credential
handshake is still in progress.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from .models import (
    AvailabilityRequirement,
    InstanceInfo,
    Tier,
    UnknownToolPolicy,
    is_tier_sufficient,
    parse_version,
)

logger = logging.getLogger(__name__)

TOOL_REQUIREMENTS: Dict[str, AvailabilityRequirement] = {
    "browse_projects": AvailabilityRequirement("8.0", Tier.free),
    "manage_project": AvailabilityRequirement("8.0", Tier.free),
    "browse_namespaces": AvailabilityRequirement("9.0", Tier.free),
    "browse_files": AvailabilityRequirement("8.0", Tier.free),
    "manage_files": AvailabilityRequirement("8.0", Tier.free),
    "browse_work_items": AvailabilityRequirement("15.0", Tier.free, "Work items API"),
    "manage_work_item": AvailabilityRequirement("15.0", Tier.free, "Work items API"),
    "browse_iterations": AvailabilityRequirement("13.1", Tier.premium, "Iterations are a Premium feature"),
    "manage_context": AvailabilityRequirement("8.0", Tier.free, "Local session state only"),
}

PARAMETER_REQUIREMENTS: Dict[str, Dict[str, AvailabilityRequirement]] = {
    "browse_work_items": {
        "health_status": AvailabilityRequirement("15.0", Tier.ultimate, "Health status is an Ultimate feature"),
    },
    "manage_work_item": {
        "weight": AvailabilityRequirement("15.0", Tier.premium, "Weights are a Premium feature"),
        "iteration_id": AvailabilityRequirement("15.0", Tier.premium, "Iterations are a Premium feature"),
        "health_status": AvailabilityRequirement("15.0", Tier.ultimate, "Health status is an Ultimate feature"),
    },
}


@dataclass(frozen=True)
class AvailabilityDecision:
    allowed: bool
    reason: Optional[str] = None


def unavailable_reason(requirement: AvailabilityRequirement, instance: InstanceInfo) -> Optional[str]:
    """Human-readable reason why ``instance`` does not satisfy ``requirement``."""
    if instance.version_number < requirement.version_number:
        return f"Requires GitLab {requirement.min_version}+, current version is {instance.version}"
    if not is_tier_sufficient(instance.tier, requirement.required_tier):
        return (
            f"Requires GitLab {requirement.required_tier.value} tier or higher, "
            f"current tier is {instance.tier.value}"
        )
    return None


class AvailabilityPolicy:
    """Evaluate tool and parameter requirements against the connected instance."""

    def __init__(
        self,
        requirements: Optional[Mapping[str, AvailabilityRequirement]] = None,
        parameter_requirements: Optional[Mapping[str, Mapping[str, AvailabilityRequirement]]] = None,
        *,
        unknown_tool_policy: UnknownToolPolicy = UnknownToolPolicy.fail_open,
        unknown_tool_min_version: str = "15.0",
    ) -> None:
        self._requirements = dict(TOOL_REQUIREMENTS if requirements is None else requirements)
        self._parameters = {
            tool: dict(params)
            for tool, params in (PARAMETER_REQUIREMENTS if parameter_requirements is None else parameter_requirements).items()
        }
        self.unknown_tool_policy = UnknownToolPolicy(unknown_tool_policy)
        self.unknown_tool_min_version = unknown_tool_min_version

    def requirement(self, tool: str) -> Optional[AvailabilityRequirement]:
        return self._requirements.get(tool)

    def parameter_requirements(self, tool: str) -> Mapping[str, AvailabilityRequirement]:
        return self._parameters.get(tool, {})

    def evaluate(
        self,
        tool: str,
        instance: Optional[InstanceInfo],
        *,
        handshake_pending: bool = False,
    ) -> AvailabilityDecision:
        if instance is None:
            if handshake_pending:
                return AvailabilityDecision(True)
            logger.debug(f"Availability of '{tool}' undetermined: GitLab instance not yet connected")
            return AvailabilityDecision(False, "GitLab instance not yet connected")

        requirement = self._requirements.get(tool)
        if requirement is None:
            return self._evaluate_unknown(tool, instance)

        reason = unavailable_reason(requirement, instance)
        return AvailabilityDecision(reason is None, reason)

    def is_available(self, tool: str, instance: Optional[InstanceInfo], *, handshake_pending: bool = False) -> bool:
        return self.evaluate(tool, instance, handshake_pending=handshake_pending).allowed

    def _evaluate_unknown(self, tool: str, instance: InstanceInfo) -> AvailabilityDecision:
        if self.unknown_tool_policy is UnknownToolPolicy.fail_closed:
            logger.warning(f"Tool '{tool}' has no availability requirement; excluded (fail_closed)")
            return AvailabilityDecision(False, "No availability requirement defined")
        if instance.version_number >= parse_version(self.unknown_tool_min_version):
            logger.warning(
                f"Tool '{tool}' has no availability requirement; allowed on GitLab {instance.version} "
                f">= {self.unknown_tool_min_version}"
            )
            return AvailabilityDecision(True)
        return AvailabilityDecision(
            False,
            f"Unknown tool requires GitLab {self.unknown_tool_min_version}+, current version is {instance.version}",
        )

    def restricted_parameters(self, tool: str, instance: Optional[InstanceInfo]) -> Tuple[str, ...]:
        """Names of gated parameters the instance cannot serve. Empty when the instance is unknown."""
        if instance is None:
            return ()
        return tuple(
            name
            for name, requirement in self._parameters.get(tool, {}).items()
            if unavailable_reason(requirement, instance) is not None
        )

    def tools_for_tier(self, tier: Tier) -> List[str]:
        return sorted(name for name, req in self._requirements.items() if is_tier_sufficient(tier, req.required_tier))

