"""Capability catalog: schemas, operations, the filter pipeline and the registry.

Components
----------

- ``FlatSchema`` / ``DiscriminatedSchema``: explicit parameter schema variants.
- ``Operation``: immutable provider contribution; ``DerivedOperation`` is its
  cached, policy-filtered projection.
- ``PIPELINE``: ordered filter stages, each recording one ``ExclusionReason``.
- ``CapabilityRegistry``: aggregates providers, caches the derived set and
  swaps it atomically on rebuild.
- ``ChangeNotifier``: ``tools/list_changed`` fan-out.
"""

from .base import CapabilityProvider, DerivedOperation, Operation, ToolDefinition
from .events import ChangeNotifier
from .pipeline import PIPELINE, ExclusionReason, FilterStatistics
from .registry import CapabilityRegistry, OperationMetadata, RegistrySnapshot
from .schema import ActionBranch, DiscriminatedSchema, FlatSchema, ParamSpec, ParamType

__all__ = [
    "ActionBranch",
    "CapabilityProvider",
    "CapabilityRegistry",
    "ChangeNotifier",
    "DerivedOperation",
    "DiscriminatedSchema",
    "ExclusionReason",
    "FilterStatistics",
    "FlatSchema",
    "Operation",
    "OperationMetadata",
    "PIPELINE",
    "ParamSpec",
    "ParamType",
    "RegistrySnapshot",
    "ToolDefinition",
]
