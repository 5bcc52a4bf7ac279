"""Work item (issue) tools.

``weight``, ``iteration_id`` and ``health_status`` are tier-gated parameters:
on instances below the required tier they are stripped from the advertised
schema while the tools stay available.
"""

from __future__ import annotations

from typing import Any, Dict

from ..capabilities.base import CapabilityProvider, Operation
from ..capabilities.schema import ActionBranch, DiscriminatedSchema, ParamSpec, ParamType
from ..introspection.client import GitLabApiClient
from ._util import encode_id, pick

_PROJECT_ID = ParamSpec(name="project_id", required=True, description="Project ID or URL-encoded path")
_IID = ParamSpec(name="iid", type=ParamType.integer, required=True, description="Project-scoped work item number")
_HEALTH = ParamSpec(
    name="health_status", enum=["on_track", "needs_attention", "at_risk"], description="Health status"
)
_WEIGHT = ParamSpec(name="weight", type=ParamType.integer, description="Weight")
_ITERATION = ParamSpec(name="iteration_id", type=ParamType.integer, description="Iteration to assign")
_LABELS = ParamSpec(name="labels", description="Comma separated label names")

BROWSE_WORK_ITEMS_SCHEMA = DiscriminatedSchema(
    branches=[
        ActionBranch(
            action="list",
            description="List work items of a project",
            params=[
                _PROJECT_ID,
                ParamSpec(name="state", enum=["opened", "closed", "all"]),
                _LABELS,
                _HEALTH,
                ParamSpec(name="per_page", type=ParamType.integer),
            ],
        ),
        ActionBranch(action="get", description="Get one work item", params=[_PROJECT_ID, _IID]),
    ]
)

_WRITABLE = ("title", "description", "labels", "weight", "iteration_id", "health_status")

MANAGE_WORK_ITEM_SCHEMA = DiscriminatedSchema(
    branches=[
        ActionBranch(
            action="create",
            description="Create a work item",
            params=[
                _PROJECT_ID,
                ParamSpec(name="title", required=True),
                ParamSpec(name="description"),
                _LABELS,
                _WEIGHT,
                _ITERATION,
                _HEALTH,
            ],
        ),
        ActionBranch(
            action="update",
            description="Update a work item",
            params=[
                _PROJECT_ID,
                _IID,
                ParamSpec(name="title"),
                ParamSpec(name="description"),
                _LABELS,
                ParamSpec(name="state_event", enum=["close", "reopen"]),
                _WEIGHT,
                _ITERATION,
                _HEALTH,
            ],
        ),
        ActionBranch(action="delete", description="Delete a work item", params=[_PROJECT_ID, _IID]),
    ]
)


def build_provider(client: GitLabApiClient) -> CapabilityProvider:
    async def browse_work_items(args: Dict[str, Any]) -> Any:
        base = f"/projects/{encode_id(args['project_id'])}/issues"
        if args["action"] == "get":
            return await client.request("GET", f"{base}/{args['iid']}")
        return await client.request("GET", base, params=pick(args, ("state", "labels", "health_status", "per_page")))

    async def manage_work_item(args: Dict[str, Any]) -> Any:
        base = f"/projects/{encode_id(args['project_id'])}/issues"
        action = args["action"]
        if action == "create":
            return await client.request("POST", base, json=pick(args, _WRITABLE))
        if action == "update":
            return await client.request("PUT", f"{base}/{args['iid']}", json=pick(args, (*_WRITABLE, "state_event")))
        return await client.request("DELETE", f"{base}/{args['iid']}")

    return CapabilityProvider(
        name="work_items",
        operations=(
            Operation(
                name="browse_work_items",
                description=(
                    "List and read issues and other work items. "
                    "Related: manage_work_item to create or update them, browse_iterations for planning."
                ),
                schema=BROWSE_WORK_ITEMS_SCHEMA,
                handler=browse_work_items,
                mutates_remote_state=False,
            ),
            Operation(
                name="manage_work_item",
                description="Create, update or delete work items. Related: browse_work_items to find them.",
                schema=MANAGE_WORK_ITEM_SCHEMA,
                handler=manage_work_item,
            ),
        ),
    )
