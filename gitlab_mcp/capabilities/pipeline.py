"""Declarative filter pipeline.

Each stage is a pure ``(Candidate, PolicySnapshot) -> Candidate | None``
function. ``PIPELINE`` fixes the order once; the first stage returning ``None``
excludes the operation and its ``reason`` is the one recorded. Stages without a
reason only transform and never exclude.

Cross-reference rewriting needs the full survivor set, so it runs as a second
pass (``link_cross_references``) after every operation has gone through the
pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import Field

from ..core.base import BaseSchema
from ..policy.provider import PolicySnapshot
from .base import Operation, Schema
from .transform import deny_actions, resolve_related, strip_parameters, strip_related

logger = logging.getLogger(__name__)


class ExclusionReason(str, Enum):
    read_only = "read-only"
    denied_regex = "denied-regex"
    insufficient_scope = "insufficient-scope"
    tier_or_version = "tier-or-version"
    all_actions_denied = "all-actions-denied"


@dataclass(frozen=True)
class Candidate:
    """Working projection of an operation while it moves through the stages."""

    operation: Operation
    description: str
    schema: Schema
    description_overridden: bool = False

    @property
    def name(self) -> str:
        return self.operation.name

    @classmethod
    def of(cls, operation: Operation) -> "Candidate":
        return cls(operation=operation, description=operation.description, schema=operation.schema)


StageFn = Callable[[Candidate, PolicySnapshot], Optional[Candidate]]


@dataclass(frozen=True)
class FilterStage:
    name: str
    apply: StageFn
    reason: Optional[ExclusionReason] = None


def check_read_only(candidate: Candidate, policy: PolicySnapshot) -> Optional[Candidate]:
    if policy.read_only and candidate.operation.mutates_remote_state:
        return None
    return candidate


def check_denied_regex(candidate: Candidate, policy: PolicySnapshot) -> Optional[Candidate]:
    return None if policy.is_name_denied(candidate.name) else candidate


def check_scopes(candidate: Candidate, policy: PolicySnapshot) -> Optional[Candidate]:
    if policy.scopes is None:
        return candidate
    if policy.scope_policy.is_tool_available(candidate.name, policy.scopes):
        return candidate
    logger.debug(f"'{candidate.name}' hidden: token scopes {sorted(policy.scopes)} insufficient")
    return None


def check_availability(candidate: Candidate, policy: PolicySnapshot) -> Optional[Candidate]:
    decision = policy.availability.evaluate(
        candidate.name, policy.instance, handshake_pending=policy.handshake_pending
    )
    if decision.allowed:
        return candidate
    logger.debug(f"'{candidate.name}' hidden: {decision.reason}")
    return None


def apply_action_denial(candidate: Candidate, policy: PolicySnapshot) -> Optional[Candidate]:
    denied = policy.denied_actions_for(candidate.name)
    if not denied:
        return candidate
    schema = deny_actions(candidate.schema, denied)
    if schema is None:
        return None
    return candidate if schema is candidate.schema else replace(candidate, schema=schema)


def strip_tier_parameters(candidate: Candidate, policy: PolicySnapshot) -> Optional[Candidate]:
    restricted = policy.availability.restricted_parameters(candidate.name, policy.instance)
    if not restricted:
        return candidate
    logger.debug(f"'{candidate.name}': stripping tier-restricted parameters {list(restricted)}")
    return replace(candidate, schema=strip_parameters(candidate.schema, restricted))


def apply_description_override(candidate: Candidate, policy: PolicySnapshot) -> Optional[Candidate]:
    override = policy.description_overrides.get(candidate.name.lower())
    if override is None:
        return candidate
    return replace(candidate, description=override, description_overridden=True)


PIPELINE: Tuple[FilterStage, ...] = (
    FilterStage("read_only", check_read_only, ExclusionReason.read_only),
    FilterStage("denied_regex", check_denied_regex, ExclusionReason.denied_regex),
    FilterStage("scopes", check_scopes, ExclusionReason.insufficient_scope),
    FilterStage("availability", check_availability, ExclusionReason.tier_or_version),
    FilterStage("action_denial", apply_action_denial, ExclusionReason.all_actions_denied),
    FilterStage("tier_parameters", strip_tier_parameters),
    FilterStage("description_override", apply_description_override),
)


@dataclass(frozen=True)
class StageOutcome:
    candidate: Optional[Candidate]
    reason: Optional[ExclusionReason] = None


def run_stages(
    operation: Operation,
    policy: PolicySnapshot,
    stages: Sequence[FilterStage] = PIPELINE,
) -> StageOutcome:
    """Push one operation through ``stages``; stop at the first exclusion."""
    candidate = Candidate.of(operation)
    for stage in stages:
        result = stage.apply(candidate, policy)
        if result is None:
            if stage.reason is None:
                raise RuntimeError(f"Stage '{stage.name}' has no exclusion reason but excluded '{operation.name}'")
            return StageOutcome(None, stage.reason)
        candidate = result
    return StageOutcome(candidate)


def link_cross_references(candidates: Sequence[Candidate], policy: PolicySnapshot) -> List[Candidate]:
    """Second pass: resolve ``Related:`` clauses against the survivors.

    Overridden descriptions are left verbatim. With cross references disabled
    the clause is stripped.
    """
    survivors = frozenset(c.name for c in candidates)
    linked: List[Candidate] = []
    for c in candidates:
        if c.description_overridden:
            linked.append(c)
            continue
        if policy.cross_refs:
            description = resolve_related(c.description, survivors)
        else:
            description = strip_related(c.description)
        linked.append(c if description == c.description else replace(c, description=description))
    return linked


class FilterStatistics(BaseSchema):
    """Counts of the last build. ``total - available`` equals the sum of the ``filtered_by_*`` fields."""

    total: int = Field(default=0, ge=0)
    available: int = Field(default=0, ge=0)
    filtered_by_read_only: int = Field(default=0, ge=0)
    filtered_by_denied_regex: int = Field(default=0, ge=0)
    filtered_by_scopes: int = Field(default=0, ge=0)
    filtered_by_tier: int = Field(default=0, ge=0)
    filtered_by_action_denial: int = Field(default=0, ge=0)

    @classmethod
    def from_reasons(cls, total: int, available: int, reasons: Iterable[ExclusionReason]) -> "FilterStatistics":
        counts: Dict[ExclusionReason, int] = {r: 0 for r in ExclusionReason}
        for r in reasons:
            counts[r] += 1
        return cls(
            total=total,
            available=available,
            filtered_by_read_only=counts[ExclusionReason.read_only],
            filtered_by_denied_regex=counts[ExclusionReason.denied_regex],
            filtered_by_scopes=counts[ExclusionReason.insufficient_scope],
            filtered_by_tier=counts[ExclusionReason.tier_or_version],
            filtered_by_action_denial=counts[ExclusionReason.all_actions_denied],
        )

    @property
    def excluded(self) -> int:
        return (
            self.filtered_by_read_only
            + self.filtered_by_denied_regex
            + self.filtered_by_scopes
            + self.filtered_by_tier
            + self.filtered_by_action_denial
        )
