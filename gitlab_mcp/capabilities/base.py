"""Operation types.

``Operation`` is what a provider contributes: a name, a description, a
parameter schema, a handler and whether it mutates remote state. Operations are
immutable once contributed.

``DerivedOperation`` is the projection the registry caches after policy
filtering: same name and handler, possibly rewritten description and narrowed
schema. It is recomputed on every rebuild.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

from pydantic import Field

from ..core.base import BaseSchema
from ..core.errors import CapabilityError, DeniedActionError, UpstreamError
from .schema import DiscriminatedSchema, FlatSchema, SchemaValidator

Handler = Callable[[Dict[str, Any]], Union[Awaitable[Any], Any]]
Schema = Union[FlatSchema, DiscriminatedSchema]


class ToolDefinition(BaseSchema):
    """Metadata-only view of an operation as advertised to clients."""

    name: str
    description: str
    input_schema: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class Operation:
    """
    A named, schema-described capability contributed by a provider.

    Attributes:
        name: Globally unique tool name.
        description: Human-readable description; may end with a ``Related:`` clause.
        schema: Flat or discriminated parameter schema.
        handler: Callable receiving validated arguments. May be sync or async.
        mutates_remote_state: False for tools that are safe in read-only mode,
            including tools that only change local session state.
    """

    name: str
    description: str
    schema: Schema
    handler: Handler = field(repr=False, compare=False)
    mutates_remote_state: bool = True

    def definition(self, *, flat: bool = False) -> ToolDefinition:
        schema = self.schema.to_flat_json_schema() if flat else self.schema.to_json_schema()
        return ToolDefinition(name=self.name, description=self.description, input_schema=schema)


@dataclass(frozen=True)
class CapabilityProvider:
    """A named group of operations registered together at startup."""

    name: str
    operations: Tuple[Operation, ...]


def requested_action(schema: Schema, args: Any) -> Optional[str]:
    if not isinstance(schema, DiscriminatedSchema) or not isinstance(args, Mapping):
        return None
    value = args.get(schema.discriminator)
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class DerivedOperation:
    """Policy-filtered projection of an ``Operation``."""

    source: Operation
    description: str
    schema: Schema

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def mutates_remote_state(self) -> bool:
        return self.source.mutates_remote_state

    @cached_property
    def validator(self) -> SchemaValidator:
        return self.schema.build_validator(self.name)

    def definition(self, *, flat: bool = False) -> ToolDefinition:
        schema = self.schema.to_flat_json_schema() if flat else self.schema.to_json_schema()
        return ToolDefinition(name=self.name, description=self.description, input_schema=schema)

    async def execute(self, args: Any) -> Any:
        """Validate ``args`` against the derived schema and run the handler.

        Raises:
            DeniedActionError: the action exists on the source schema but was removed.
            ValidationError: arguments do not match the derived schema.
            UpstreamError: the handler failed with a non-capability exception.
        """
        action = requested_action(self.source.schema, args)
        if action is not None and action in self.source.schema.actions() and action not in self.schema.actions():
            raise DeniedActionError(self.name, action)

        validated = self.validator.validate(args)
        try:
            result = self.source.handler(validated)
            if inspect.isawaitable(result):
                result = await result
        except CapabilityError:
            raise
        except Exception as e:
            raise UpstreamError(self.name, str(e) or e.__class__.__name__) from e
        return result
