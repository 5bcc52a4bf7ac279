from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping
from urllib.parse import quote


def encode_id(value: Any) -> str:
    """URL-encode a numeric id or ``group/project`` path for use in a REST path."""
    return quote(str(value), safe="")


def pick(args: Mapping[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    return {k: args[k] for k in keys if args.get(k) is not None}
