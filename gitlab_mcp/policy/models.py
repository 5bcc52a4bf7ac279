from __future__ import annotations

"""Value types shared by the availability and scope policies."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^\s*v?(\d+)\.(\d+)")


class Tier(str, Enum):
    """
    GitLab license tier, ordered free < premium < ultimate.
    """

    free = "free"
    premium = "premium"
    ultimate = "ultimate"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Tier"]:
        """Map loose tier names (``Free``, ``core``, ``EE Ultimate``...) to a ``Tier``."""
        if not value:
            return None
        text = value.strip().lower()
        if text in ("free", "core", "ce"):
            return cls.free
        for tier in (cls.ultimate, cls.premium, cls.free):
            if tier.value in text:
                return tier
        return None


_TIER_RANK = {Tier.free: 0, Tier.premium: 1, Tier.ultimate: 2}


class UnknownToolPolicy(str, Enum):
    """Treatment of tools missing from the availability table."""

    fail_open = "fail_open"
    fail_closed = "fail_closed"


def parse_version(version: Optional[str]) -> float:
    """
    Parse ``major.minor[...]`` into ``major + minor / 100``.

    ``None``, ``"unknown"`` and unparsable strings map to ``0.0``, the lowest
    possible version.
    """
    if not version:
        return 0.0
    match = _VERSION_RE.match(version)
    if match is None:
        return 0.0
    return int(match.group(1)) + int(match.group(2)) / 100


def is_tier_sufficient(actual: Tier, required: Tier) -> bool:
    return actual.rank >= required.rank


@dataclass(frozen=True)
class AvailabilityRequirement:
    """Minimum GitLab version and tier for a tool or parameter."""

    min_version: str
    required_tier: Tier = Tier.free
    notes: Optional[str] = None

    @property
    def version_number(self) -> float:
        return parse_version(self.min_version)


@dataclass(frozen=True)
class InstanceInfo:
    """Version and tier of the connected GitLab instance."""

    version: str
    tier: Tier

    @property
    def version_number(self) -> float:
        return parse_version(self.version)
