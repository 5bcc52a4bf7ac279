from __future__ import annotations

import pytest

from gitlab_mcp.policy.availability import (
    PARAMETER_REQUIREMENTS,
    TOOL_REQUIREMENTS,
    AvailabilityPolicy,
    unavailable_reason,
)
from gitlab_mcp.policy.models import AvailabilityRequirement, InstanceInfo, Tier, UnknownToolPolicy, parse_version


@pytest.mark.parametrize(
    "version, expected",
    [
        ("15.0", 15.0),
        ("13.10", 13.10),
        ("16.5.0-ee", 16.05),
        ("v17.2", 17.02),
        ("unknown", 0.0),
        ("", 0.0),
        (None, 0.0),
        ("garbage", 0.0),
    ],
)
def test_parse_version(version, expected) -> None:
    assert parse_version(version) == pytest.approx(expected)


def test_two_digit_minor_versions_order_correctly() -> None:
    assert parse_version("13.10") > parse_version("13.9")


@pytest.mark.parametrize(
    "raw, tier",
    [
        ("free", Tier.free),
        ("Core", Tier.free),
        ("Premium", Tier.premium),
        ("EE Ultimate", Tier.ultimate),
        ("gold", None),
        (None, None),
    ],
)
def test_tier_parse(raw, tier) -> None:
    assert Tier.parse(raw) is tier


def test_tier_ranks_are_ordered() -> None:
    assert Tier.free.rank < Tier.premium.rank < Tier.ultimate.rank


def _policy(**kwargs) -> AvailabilityPolicy:
    return AvailabilityPolicy(
        requirements={"browse_y": AvailabilityRequirement("13.1", Tier.premium)},
        parameter_requirements={
            "manage_w": {
                "weight": AvailabilityRequirement("15.0", Tier.premium),
                "health_status": AvailabilityRequirement("15.0", Tier.ultimate),
            }
        },
        **kwargs,
    )


def test_version_gate_wins_even_with_top_tier() -> None:
    decision = _policy().evaluate("browse_y", InstanceInfo("12.9", Tier.ultimate))
    assert decision.allowed is False
    assert decision.reason == "Requires GitLab 13.1+, current version is 12.9"


def test_tier_gate() -> None:
    decision = _policy().evaluate("browse_y", InstanceInfo("16.0", Tier.free))
    assert decision.allowed is False
    assert decision.reason == "Requires GitLab premium tier or higher, current tier is free"
    assert _policy().is_available("browse_y", InstanceInfo("16.0", Tier.premium))


def test_not_connected_excludes_unless_handshake_pending() -> None:
    policy = _policy()
    assert policy.evaluate("browse_y", None).allowed is False
    assert policy.evaluate("browse_y", None, handshake_pending=True).allowed is True


def test_unknown_tool_fail_open_uses_version_floor() -> None:
    policy = _policy(unknown_tool_min_version="15.0")
    assert policy.is_available("brand_new_tool", InstanceInfo("15.0", Tier.free))
    assert not policy.is_available("brand_new_tool", InstanceInfo("14.10", Tier.ultimate))


def test_unknown_tool_fail_closed() -> None:
    policy = _policy(unknown_tool_policy=UnknownToolPolicy.fail_closed)
    assert not policy.is_available("brand_new_tool", InstanceInfo("18.0", Tier.ultimate))


def test_restricted_parameters() -> None:
    policy = _policy()
    assert policy.restricted_parameters("manage_w", InstanceInfo("16.0", Tier.free)) == ("weight", "health_status")
    assert policy.restricted_parameters("manage_w", InstanceInfo("16.0", Tier.premium)) == ("health_status",)
    assert policy.restricted_parameters("manage_w", InstanceInfo("16.0", Tier.ultimate)) == ()
    assert policy.restricted_parameters("manage_w", None) == ()
    assert policy.restricted_parameters("browse_y", InstanceInfo("16.0", Tier.free)) == ()


def test_unavailable_reason_none_when_satisfied() -> None:
    assert unavailable_reason(AvailabilityRequirement("13.1", Tier.premium), InstanceInfo("13.1", Tier.premium)) is None


def test_default_tables() -> None:
    policy = AvailabilityPolicy()
    assert policy.requirement("browse_iterations") == TOOL_REQUIREMENTS["browse_iterations"]
    assert "browse_iterations" not in policy.tools_for_tier(Tier.free)
    assert "browse_iterations" in policy.tools_for_tier(Tier.premium)
    for tool in PARAMETER_REQUIREMENTS:
        assert tool in TOOL_REQUIREMENTS
