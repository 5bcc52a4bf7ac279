"""Capability registry.

The registry aggregates the operations of every provider into one namespace
and exposes the subset permitted by the current policy.

Caching
-------

The derived set is built lazily on first access and rebuilt wholesale by
``rebuild()``. Each build runs against one ``PolicySnapshot`` and produces an
immutable ``RegistrySnapshot``; publishing it is a single reference swap, so
concurrent readers see either the old or the new set, never a mix. Lookups and
``execute`` read the current reference and hold no lock while an operation
runs.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import Field

from ..core.base import BaseSchema
from ..core.errors import DuplicateOperationError, NotFoundError
from ..policy.models import Tier
from ..policy.provider import PolicySnapshot, PolicySource
from .base import CapabilityProvider, DerivedOperation, Operation, ToolDefinition
from .pipeline import (
    PIPELINE,
    Candidate,
    ExclusionReason,
    FilterStage,
    FilterStatistics,
    link_cross_references,
    run_stages,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrySnapshot:
    """One complete, immutable build of the derived operation set."""

    generation: int
    policy: PolicySnapshot
    operations: Mapping[str, DerivedOperation]
    definitions: Tuple[ToolDefinition, ...]
    exclusions: Mapping[str, ExclusionReason]
    statistics: FilterStatistics


class OperationMetadata(BaseSchema):
    """Per-operation facts for documentation tooling."""

    name: str
    provider: str
    read_only: bool
    min_version: Optional[str] = None
    required_tier: Optional[Tier] = None
    notes: Optional[str] = None
    required_scopes: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)


class CapabilityRegistry:
    """
    Policy-filtered, cached catalog of operations.

    Notes:
        - ``initialize`` fails fast with ``DuplicateOperationError`` on name collisions.
        - ``get``, ``list_tools`` and ``execute`` only ever consult the cache.
        - ``list_unfiltered`` bypasses every policy stage and is meant for documentation.
    """

    def __init__(self, policy_source: PolicySource, *, stages: Sequence[FilterStage] = PIPELINE) -> None:
        self._policy_source = policy_source
        self._stages = tuple(stages)
        self._operations: Mapping[str, Operation] = MappingProxyType({})
        self._owners: Mapping[str, str] = MappingProxyType({})
        self._snapshot: Optional[RegistrySnapshot] = None
        self._lock = threading.Lock()
        self._generation = 0

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def initialize(self, providers: Iterable[CapabilityProvider]) -> None:
        """
        Aggregate provider operations into a single namespace.

        Args:
            providers: Providers in registration order; this order is the
                order of ``list_tools``.

        Raises:
            DuplicateOperationError: If two operations share a name.
        """
        operations: Dict[str, Operation] = {}
        owners: Dict[str, str] = {}
        for provider in providers:
            for op in provider.operations:
                if op.name in owners:
                    raise DuplicateOperationError(op.name, owners[op.name], provider.name)
                operations[op.name] = op
                owners[op.name] = provider.name
        with self._lock:
            self._operations = MappingProxyType(operations)
            self._owners = MappingProxyType(owners)
            self._snapshot = None
        logger.info(f"Registered {len(operations)} tool(s) from {len(set(owners.values()))} provider(s)")

    @property
    def operations(self) -> Mapping[str, Operation]:
        """Raw, unfiltered operations keyed by name."""
        return self._operations

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _build(self) -> RegistrySnapshot:
        generation = self._next_generation()
        policy = self._policy_source.snapshot()
        operations = self._operations

        survivors: List[Candidate] = []
        exclusions: Dict[str, ExclusionReason] = {}
        for op in operations.values():
            outcome = run_stages(op, policy, self._stages)
            if outcome.candidate is None:
                assert outcome.reason is not None
                exclusions[op.name] = outcome.reason
            else:
                survivors.append(outcome.candidate)

        linked = link_cross_references(survivors, policy)
        derived = {c.name: DerivedOperation(source=c.operation, description=c.description, schema=c.schema) for c in linked}
        statistics = FilterStatistics.from_reasons(len(operations), len(derived), exclusions.values())
        breakdown = ", ".join(f"{r.value}={n}" for r, n in _count(exclusions.values()).items()) or "none"
        logger.info(
            f"Tool cache built (generation {generation}): "
            f"{statistics.available}/{statistics.total} available, excluded: {breakdown}"
        )
        return RegistrySnapshot(
            generation=generation,
            policy=policy,
            operations=MappingProxyType(derived),
            definitions=tuple(d.definition(flat=policy.flat_schemas) for d in derived.values()),
            exclusions=MappingProxyType(exclusions),
            statistics=statistics,
        )

    def _publish(self, snapshot: RegistrySnapshot) -> RegistrySnapshot:
        with self._lock:
            current = self._snapshot
            # a build that started later always wins over one that started earlier
            if current is None or snapshot.generation > current.generation:
                self._snapshot = snapshot
            return self._snapshot

    def snapshot(self) -> RegistrySnapshot:
        """Current cache, building it on first access."""
        current = self._snapshot
        if current is None:
            current = self._publish(self._build())
        return current

    def rebuild(self) -> FilterStatistics:
        """Discard the cache and re-derive it from the providers and current policy."""
        return self._publish(self._build()).statistics

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get(self, name: str) -> Optional[DerivedOperation]:
        return self.snapshot().operations.get(name)

    def has(self, name: str) -> bool:
        return name in self.snapshot().operations

    def names(self) -> List[str]:
        return list(self.snapshot().operations)

    async def execute(self, name: str, args: Any) -> Any:
        """
        Run an admitted operation.

        Raises:
            NotFoundError: If ``name`` is not in the current cache.
            ValidationError: If ``args`` do not match the derived schema.
            DeniedActionError: If the requested action was removed by deny rules.
            UpstreamError: If the operation itself fails.
        """
        op = self.snapshot().operations.get(name)
        if op is None:
            raise NotFoundError(name)
        return await op.execute(args)

    def list_tools(self) -> List[ToolDefinition]:
        """Advertised tools in registration order. Handlers are never exposed."""
        return [d.model_copy(deep=True) for d in self.snapshot().definitions]

    def list_unfiltered(self) -> List[ToolDefinition]:
        """Every registered tool with its original description and schema."""
        return [op.definition() for op in self._operations.values()]

    def filter_statistics(self) -> FilterStatistics:
        return self.snapshot().statistics

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def explain(self, name: str) -> Optional[ExclusionReason]:
        """
        Re-evaluate ``name`` against the current policy, bypassing the cache.

        Returns:
            The exclusion reason, or ``None`` when the operation is admitted.

        Raises:
            NotFoundError: If no provider registered ``name``.
        """
        op = self._operations.get(name)
        if op is None:
            raise NotFoundError(name)
        return run_stages(op, self._policy_source.snapshot(), self._stages).reason

    def operation_metadata(self) -> List[OperationMetadata]:
        policy = self._policy_source.snapshot()
        result: List[OperationMetadata] = []
        for op in self._operations.values():
            requirement = policy.availability.requirement(op.name)
            scopes = policy.scope_policy.required_scopes(op.name)
            result.append(
                OperationMetadata(
                    name=op.name,
                    provider=self._owners[op.name],
                    read_only=not op.mutates_remote_state,
                    min_version=requirement.min_version if requirement else None,
                    required_tier=requirement.required_tier if requirement else None,
                    notes=requirement.notes if requirement else None,
                    required_scopes=sorted(scopes) if scopes else [],
                    actions=list(op.schema.actions()),
                )
            )
        return result


def _count(reasons: Iterable[ExclusionReason]) -> Dict[ExclusionReason, int]:
    counts: Dict[ExclusionReason, int] = {}
    for r in reasons:
        counts[r] = counts.get(r, 0) + 1
    return counts
