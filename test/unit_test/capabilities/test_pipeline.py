from __future__ import annotations

import re

from gitlab_mcp.capabilities.base import Operation
from gitlab_mcp.capabilities.pipeline import (
    Candidate,
    ExclusionReason,
    FilterStatistics,
    apply_action_denial,
    apply_description_override,
    check_availability,
    check_denied_regex,
    check_read_only,
    check_scopes,
    link_cross_references,
    run_stages,
    strip_tier_parameters,
)
from gitlab_mcp.capabilities.schema import ActionBranch, DiscriminatedSchema, FlatSchema, ParamSpec, ParamType
from gitlab_mcp.policy.availability import AvailabilityPolicy
from gitlab_mcp.policy.models import AvailabilityRequirement, InstanceInfo, Tier
from gitlab_mcp.policy.provider import PolicySnapshot
from gitlab_mcp.policy.scopes import ScopePolicy

_ULTIMATE = InstanceInfo(version="17.2", tier=Tier.ultimate)


def _policy(**kwargs) -> PolicySnapshot:
    kwargs.setdefault("instance", _ULTIMATE)
    kwargs.setdefault("availability", AvailabilityPolicy(requirements={}, parameter_requirements={}))
    kwargs.setdefault("scope_policy", ScopePolicy({}))
    return PolicySnapshot(**kwargs)


async def _noop(args):
    return args


def _op(name: str, *, actions=(), mutates: bool = True, description: str | None = None) -> Operation:
    if actions:
        schema = DiscriminatedSchema(branches=[ActionBranch(action=a) for a in actions])
    else:
        schema = FlatSchema(params=[ParamSpec(name="id", type=ParamType.integer)])
    return Operation(
        name=name,
        description=description or f"{name} tool",
        schema=schema,
        handler=_noop,
        mutates_remote_state=mutates,
    )


def test_read_only_stage_keeps_tools_that_do_not_mutate_remote_state() -> None:
    policy = _policy(read_only=True)
    assert check_read_only(Candidate.of(_op("manage_x")), policy) is None
    assert check_read_only(Candidate.of(_op("manage_context", mutates=False)), policy) is not None
    assert check_read_only(Candidate.of(_op("manage_x")), _policy()) is not None


def test_denied_regex_stage() -> None:
    policy = _policy(denied_tools_regex=re.compile(r"^manage_"))
    assert check_denied_regex(Candidate.of(_op("manage_x")), policy) is None
    assert check_denied_regex(Candidate.of(_op("browse_x")), policy) is not None


def test_scope_stage_is_skipped_when_scopes_unknown() -> None:
    scope_policy = ScopePolicy({"manage_x": {"api"}})
    candidate = Candidate.of(_op("manage_x"))
    assert check_scopes(candidate, _policy(scope_policy=scope_policy, scopes=None)) is candidate
    assert check_scopes(candidate, _policy(scope_policy=scope_policy, scopes=frozenset())) is None
    assert check_scopes(candidate, _policy(scope_policy=scope_policy, scopes=frozenset({"api"}))) is candidate


def test_availability_stage_excludes_when_not_connected() -> None:
    candidate = Candidate.of(_op("browse_x"))
    assert check_availability(candidate, _policy(instance=None)) is None
    assert check_availability(candidate, _policy(instance=None, handshake_pending=True)) is candidate


def test_action_denial_stage_narrows_schema() -> None:
    candidate = Candidate.of(_op("manage_z", actions=("create", "update", "delete")))
    result = apply_action_denial(candidate, _policy(denied_actions={"manage_z": frozenset({"delete"})}))
    assert result is not None
    assert result.schema.actions() == ("create", "update")
    assert candidate.schema.actions() == ("create", "update", "delete")


def test_action_denial_stage_leaves_flat_operations_alone() -> None:
    candidate = Candidate.of(_op("browse_flat"))
    assert apply_action_denial(candidate, _policy(denied_actions={"browse_flat": frozenset({"id"})})) is candidate


def test_tier_parameter_stage_strips_without_excluding() -> None:
    availability = AvailabilityPolicy(
        requirements={},
        parameter_requirements={"browse_x": {"id": AvailabilityRequirement("15.0", Tier.ultimate)}},
    )
    candidate = Candidate.of(_op("browse_x"))
    free = InstanceInfo(version="17.0", tier=Tier.free)
    result = strip_tier_parameters(candidate, _policy(instance=free, availability=availability))
    assert result is not None and result.schema.param_names() == ()
    assert strip_tier_parameters(candidate, _policy(availability=availability)) is candidate


def test_description_override_stage_marks_candidate() -> None:
    result = apply_description_override(
        Candidate.of(_op("core_tool_1")), _policy(description_overrides={"core_tool_1": "Custom."})
    )
    assert result is not None
    assert result.description == "Custom."
    assert result.description_overridden is True


def test_first_failing_stage_is_the_recorded_reason() -> None:
    policy = _policy(
        read_only=True,
        denied_tools_regex=re.compile("manage_x"),
        scope_policy=ScopePolicy({"manage_x": {"api"}}),
        scopes=frozenset({"read_user"}),
    )
    assert run_stages(_op("manage_x"), policy).reason is ExclusionReason.read_only
    assert run_stages(_op("manage_x", mutates=False), policy).reason is ExclusionReason.denied_regex


def test_run_stages_admits_operation_with_no_reason() -> None:
    outcome = run_stages(_op("browse_x"), _policy())
    assert outcome.reason is None
    assert outcome.candidate is not None and outcome.candidate.name == "browse_x"


def test_link_cross_references_against_survivors() -> None:
    candidates = [
        Candidate.of(_op("browse_a", description="A. Related: manage_b edits, manage_gone x.")),
        Candidate.of(_op("manage_b")),
    ]
    linked = link_cross_references(candidates, _policy())
    assert linked[0].description == "A. Related: manage_b edits."
    assert linked[1] is candidates[1]


def test_link_cross_references_skips_overridden_and_strips_when_disabled() -> None:
    overridden = Candidate(
        operation=_op("browse_a"),
        description="Custom. Related: manage_gone x.",
        schema=FlatSchema(),
        description_overridden=True,
    )
    plain = Candidate.of(_op("browse_b", description="B. Related: browse_a lookups."))
    linked = link_cross_references([overridden, plain], _policy(cross_refs=False))
    assert linked[0].description == "Custom. Related: manage_gone x."
    assert linked[1].description == "B."


def test_filter_statistics_from_reasons() -> None:
    stats = FilterStatistics.from_reasons(
        6,
        2,
        [
            ExclusionReason.insufficient_scope,
            ExclusionReason.insufficient_scope,
            ExclusionReason.read_only,
            ExclusionReason.all_actions_denied,
        ],
    )
    assert stats.filtered_by_scopes == 2
    assert stats.filtered_by_read_only == 1
    assert stats.filtered_by_action_denial == 1
    assert stats.total - stats.available == stats.excluded
    assert stats.model_dump(by_alias=True)["filteredByScopes"] == 2
