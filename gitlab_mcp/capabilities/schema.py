"""Parameter schema variants for capability operations.

A tool's parameters are described by one of two explicit variants:

- ``FlatSchema``: a single object of named parameters.
- ``DiscriminatedSchema``: a tagged union of ``ActionBranch`` objects that
  share a literal discriminator field (conventionally ``action``).

Both variants can render themselves as JSON Schema for ``tools/list`` and
build a pydantic-backed ``SchemaValidator`` used at execution time. Schema
transforms (action removal, parameter stripping) return new instances; the
originals are never mutated.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import ConfigDict, Field, TypeAdapter, create_model
from pydantic import ValidationError as PydanticValidationError

from ..core.base import BaseSchema
from ..core.errors import ValidationError


class ParamType(str, Enum):
    string = "string"
    integer = "integer"
    number = "number"
    boolean = "boolean"
    array = "array"
    object = "object"


_PY_TYPES: Dict[ParamType, Any] = {
    ParamType.string: str,
    ParamType.integer: int,
    ParamType.number: float,
    ParamType.boolean: bool,
    ParamType.array: List[Any],
    ParamType.object: Dict[str, Any],
}


class ParamSpec(BaseSchema):
    """A single named parameter."""

    name: str = Field(..., min_length=1, description="Parameter name as sent by the client")
    type: ParamType = Field(default=ParamType.string)
    required: bool = Field(default=False)
    description: Optional[str] = Field(default=None)
    enum: Optional[List[str]] = Field(default=None, description="Allowed values (string parameters only)")

    def annotation(self) -> Any:
        if self.enum:
            return Literal[tuple(self.enum)]  # type: ignore[valid-type]
        return _PY_TYPES[self.type]

    def to_json_schema(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value}
        if self.description:
            out["description"] = self.description
        if self.enum:
            out["enum"] = list(self.enum)
        return out


def _params_json(params: Iterable[ParamSpec]) -> Tuple[Dict[str, Any], List[str]]:
    properties: Dict[str, Any] = {}
    required: List[str] = []
    for p in params:
        properties[p.name] = p.to_json_schema()
        if p.required:
            required.append(p.name)
    return properties, required


def _model_fields(params: Iterable[ParamSpec]) -> Dict[str, Any]:
    # internal field names keep user-facing names from shadowing BaseModel attributes
    fields: Dict[str, Any] = {}
    for i, p in enumerate(params):
        ann = p.annotation()
        if p.required:
            fields[f"p{i}"] = (ann, Field(..., alias=p.name))
        else:
            fields[f"p{i}"] = (Optional[ann], Field(default=None, alias=p.name))
    return fields


_ARGS_CONFIG = ConfigDict(extra="forbid")


class FlatSchema(BaseSchema):
    """Object schema with a fixed set of parameters."""

    kind: Literal["flat"] = "flat"
    params: List[ParamSpec] = Field(default_factory=list)

    def actions(self) -> Tuple[str, ...]:
        return ()

    def param_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.params)

    def without_actions(self, denied: Iterable[str]) -> "FlatSchema":
        return self

    def without_params(self, names: Iterable[str]) -> "FlatSchema":
        drop = set(names)
        if not drop.intersection(self.param_names()):
            return self
        return FlatSchema(params=[p for p in self.params if p.name not in drop])

    def to_json_schema(self) -> Dict[str, Any]:
        properties, required = _params_json(self.params)
        out: Dict[str, Any] = {"type": "object", "properties": properties, "additionalProperties": False}
        if required:
            out["required"] = required
        return out

    def to_flat_json_schema(self) -> Dict[str, Any]:
        return self.to_json_schema()

    def build_validator(self, tool_name: str) -> "SchemaValidator":
        model = create_model(f"{tool_name}_args", __config__=_ARGS_CONFIG, **_model_fields(self.params))
        return SchemaValidator(tool_name, TypeAdapter(model))


class ActionBranch(BaseSchema):
    """One member of a discriminated schema, selected by its ``action`` literal."""

    action: str = Field(..., min_length=1)
    description: Optional[str] = Field(default=None)
    params: List[ParamSpec] = Field(default_factory=list)


class DiscriminatedSchema(BaseSchema):
    """Tagged union of action branches sharing one discriminator field."""

    kind: Literal["discriminated"] = "discriminated"
    discriminator: str = Field(default="action")
    branches: List[ActionBranch] = Field(..., min_length=1)

    def actions(self) -> Tuple[str, ...]:
        return tuple(b.action for b in self.branches)

    def param_names(self) -> Tuple[str, ...]:
        seen: Dict[str, None] = {}
        for b in self.branches:
            for p in b.params:
                seen.setdefault(p.name, None)
        return tuple(seen)

    def without_actions(self, denied: Iterable[str]) -> Optional["DiscriminatedSchema"]:
        """Return the schema minus denied branches, or ``None`` when none survive."""
        drop = {a.lower() for a in denied}
        survivors = [b for b in self.branches if b.action.lower() not in drop]
        if not survivors:
            return None
        if len(survivors) == len(self.branches):
            return self
        return DiscriminatedSchema(discriminator=self.discriminator, branches=survivors)

    def without_params(self, names: Iterable[str]) -> "DiscriminatedSchema":
        drop = set(names) - {self.discriminator}
        if not drop.intersection(self.param_names()):
            return self
        branches = [
            ActionBranch(
                action=b.action,
                description=b.description,
                params=[p for p in b.params if p.name not in drop],
            )
            for b in self.branches
        ]
        return DiscriminatedSchema(discriminator=self.discriminator, branches=branches)

    def to_json_schema(self) -> Dict[str, Any]:
        variants: List[Dict[str, Any]] = []
        for b in self.branches:
            properties, required = _params_json(b.params)
            tag: Dict[str, Any] = {"type": "string", "const": b.action}
            if b.description:
                tag["description"] = b.description
            variants.append(
                {
                    "type": "object",
                    "properties": {self.discriminator: tag, **properties},
                    "required": [self.discriminator, *required],
                    "additionalProperties": False,
                }
            )
        return {
            "type": "object",
            "oneOf": variants,
            "discriminator": {"propertyName": self.discriminator},
        }

    def to_flat_json_schema(self) -> Dict[str, Any]:
        """Merge every branch into one object schema for clients without ``oneOf`` support.

        The discriminator becomes an enum of all actions. A parameter is required
        only when every branch requires it; parameters missing from some branches
        name the actions that use them. The longer description wins on conflicts.
        """
        merged: Dict[str, Dict[str, Any]] = {}
        used_by: Dict[str, List[str]] = {}
        required_in: Dict[str, int] = {}
        for b in self.branches:
            for p in b.params:
                prop = p.to_json_schema()
                current = merged.get(p.name)
                if current is None or len(prop.get("description", "")) > len(current.get("description", "")):
                    merged[p.name] = prop
                used_by.setdefault(p.name, []).append(b.action)
                if p.required:
                    required_in[p.name] = required_in.get(p.name, 0) + 1

        total = len(self.branches)
        properties: Dict[str, Any] = {
            self.discriminator: {"type": "string", "enum": list(self.actions()), "description": "Action to perform"}
        }
        for name, prop in merged.items():
            actions = used_by[name]
            if len(actions) < total:
                note = f"Required for {', '.join(repr(a) for a in actions)} action(s)."
                prop = {**prop, "description": f"{prop['description']} {note}" if prop.get("description") else note}
            properties[name] = prop
        required = [self.discriminator, *(n for n, c in required_in.items() if c == total)]
        return {"type": "object", "properties": properties, "required": required, "additionalProperties": False}

    def build_validator(self, tool_name: str) -> "SchemaValidator":
        models = []
        for b in self.branches:
            fields = _model_fields(b.params)
            fields[self.discriminator] = (Literal[b.action], ...)  # type: ignore[valid-type]
            models.append(create_model(f"{tool_name}_{b.action}_args", __config__=_ARGS_CONFIG, **fields))
        if len(models) == 1:
            return SchemaValidator(tool_name, TypeAdapter(models[0]))
        union = Annotated[Union[tuple(models)], Field(discriminator=self.discriminator)]  # type: ignore[valid-type]
        return SchemaValidator(tool_name, TypeAdapter(union))


ParameterSchema = Annotated[Union[FlatSchema, DiscriminatedSchema], Field(discriminator="kind")]


class SchemaValidator:
    """Validate raw call arguments against a compiled parameter schema."""

    def __init__(self, tool_name: str, adapter: TypeAdapter) -> None:
        self._tool_name = tool_name
        self._adapter = adapter

    def validate(self, args: Any) -> Dict[str, Any]:
        """Return the validated arguments keyed by their public names.

        Raises:
            ValidationError: if ``args`` does not match the schema.
        """
        try:
            model = self._adapter.validate_python(args if args is not None else {})
        except PydanticValidationError as e:
            errors = e.errors(include_url=False)
            summary = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in errors
            )
            raise ValidationError(self._tool_name, summary, errors) from e
        return model.model_dump(by_alias=True, exclude_unset=True)
