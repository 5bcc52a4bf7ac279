"""Iteration tools (GitLab Premium)."""

from __future__ import annotations

from typing import Any, Dict

from ..capabilities.base import CapabilityProvider, Operation
from ..capabilities.schema import FlatSchema, ParamSpec, ParamType
from ..introspection.client import GitLabApiClient
from ._util import encode_id, pick

BROWSE_ITERATIONS_SCHEMA = FlatSchema(
    params=[
        ParamSpec(name="group_id", required=True, description="Group ID or URL-encoded path"),
        ParamSpec(name="state", enum=["opened", "upcoming", "current", "closed", "all"]),
        ParamSpec(name="search", description="Filter by title"),
        ParamSpec(name="include_ancestors", type=ParamType.boolean, description="Include parent group iterations"),
    ]
)


def build_provider(client: GitLabApiClient) -> CapabilityProvider:
    async def browse_iterations(args: Dict[str, Any]) -> Any:
        return await client.request(
            "GET",
            f"/groups/{encode_id(args['group_id'])}/iterations",
            params=pick(args, ("state", "search", "include_ancestors")),
        )

    return CapabilityProvider(
        name="iterations",
        operations=(
            Operation(
                name="browse_iterations",
                description="List group iterations (sprints). Related: browse_work_items for the items planned in them.",
                schema=BROWSE_ITERATIONS_SCHEMA,
                handler=browse_iterations,
                mutates_remote_state=False,
            ),
        ),
    )
