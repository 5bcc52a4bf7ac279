"""Schema and description transforms applied while building the cache.

- ``deny_actions``: drop denied branches of a discriminated schema
- ``strip_parameters``: drop tier-gated parameters, keeping the tool
- ``resolve_related`` / ``strip_related``: rewrite the trailing
  ``Related: browse_x purpose, manage_y purpose.`` clause of a description
"""

from __future__ import annotations

import re
from typing import Collection, Iterable, List, Optional, Union

from .schema import DiscriminatedSchema, FlatSchema

Schema = Union[FlatSchema, DiscriminatedSchema]

RELATED_RE = re.compile(r"\s*Related:\s*(.+?)\.?\s*$")
_TOOL_REF_RE = re.compile(r"^((?:browse|manage)_\w+)")


def deny_actions(schema: Schema, denied: Iterable[str]) -> Optional[Schema]:
    """Remove denied actions. ``None`` means every action was denied.

    Flat schemas are returned unchanged whatever ``denied`` holds.
    """
    if isinstance(schema, FlatSchema):
        return schema
    return schema.without_actions(denied)


def strip_parameters(schema: Schema, names: Iterable[str]) -> Schema:
    names = tuple(names)
    if not names:
        return schema
    return schema.without_params(names)


def strip_related(description: str) -> str:
    return RELATED_RE.sub("", description)


def resolve_related(description: str, available: Collection[str]) -> str:
    """Keep only ``Related:`` entries naming tools in ``available``.

    The clause is removed entirely when no entry survives.
    """
    match = RELATED_RE.search(description)
    if match is None:
        return description
    base = description[: match.start()]
    kept: List[str] = []
    for item in match.group(1).split(","):
        item = item.strip()
        ref = _TOOL_REF_RE.match(item)
        if ref is not None and ref.group(1) in available:
            kept.append(item)
    if not kept:
        return base
    return f"{base} Related: {', '.join(kept)}."
