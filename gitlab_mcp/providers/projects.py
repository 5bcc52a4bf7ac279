"""Project and namespace tools."""

from __future__ import annotations

from typing import Any, Dict

from ..capabilities.base import CapabilityProvider, Operation
from ..capabilities.schema import ActionBranch, DiscriminatedSchema, FlatSchema, ParamSpec, ParamType
from ..introspection.client import GitLabApiClient
from ._util import encode_id, pick

_PAGING = [
    ParamSpec(name="per_page", type=ParamType.integer, description="Results per page (max 100)"),
    ParamSpec(name="page", type=ParamType.integer, description="Page number"),
]
_VISIBILITY = ParamSpec(
    name="visibility", enum=["private", "internal", "public"], description="Project visibility level"
)
_PROJECT_ID = ParamSpec(name="project_id", required=True, description="Project ID or URL-encoded path")

BROWSE_PROJECTS_SCHEMA = DiscriminatedSchema(
    branches=[
        ActionBranch(
            action="list",
            description="List projects visible to the token",
            params=[
                ParamSpec(name="owned", type=ParamType.boolean, description="Only projects owned by the user"),
                ParamSpec(name="membership", type=ParamType.boolean, description="Only projects the user is a member of"),
                *_PAGING,
            ],
        ),
        ActionBranch(action="get", description="Get a single project", params=[_PROJECT_ID]),
        ActionBranch(
            action="search",
            description="Search projects by name",
            params=[ParamSpec(name="search", required=True, description="Search term"), *_PAGING],
        ),
    ]
)

MANAGE_PROJECT_SCHEMA = DiscriminatedSchema(
    branches=[
        ActionBranch(
            action="create",
            description="Create a project",
            params=[
                ParamSpec(name="name", required=True, description="Project name"),
                ParamSpec(name="namespace_id", type=ParamType.integer, description="Target namespace"),
                ParamSpec(name="description", description="Project description"),
                _VISIBILITY,
            ],
        ),
        ActionBranch(
            action="update",
            description="Update project settings",
            params=[
                _PROJECT_ID,
                ParamSpec(name="name", description="New name"),
                ParamSpec(name="description", description="New description"),
                _VISIBILITY,
            ],
        ),
        ActionBranch(action="archive", description="Archive a project", params=[_PROJECT_ID]),
        ActionBranch(action="delete", description="Delete a project", params=[_PROJECT_ID]),
    ]
)

BROWSE_NAMESPACES_SCHEMA = FlatSchema(
    params=[
        ParamSpec(name="search", description="Filter namespaces by name"),
        ParamSpec(name="owned_only", type=ParamType.boolean, description="Only namespaces owned by the user"),
        *_PAGING,
    ]
)


def build_provider(client: GitLabApiClient) -> CapabilityProvider:
    async def browse_projects(args: Dict[str, Any]) -> Any:
        action = args["action"]
        if action == "get":
            return await client.request("GET", f"/projects/{encode_id(args['project_id'])}")
        params = pick(args, ("owned", "membership", "search", "per_page", "page"))
        return await client.request("GET", "/projects", params=params)

    async def manage_project(args: Dict[str, Any]) -> Any:
        action = args["action"]
        if action == "create":
            return await client.request(
                "POST", "/projects", json=pick(args, ("name", "namespace_id", "description", "visibility"))
            )
        path = f"/projects/{encode_id(args['project_id'])}"
        if action == "update":
            return await client.request("PUT", path, json=pick(args, ("name", "description", "visibility")))
        if action == "archive":
            return await client.request("POST", f"{path}/archive")
        return await client.request("DELETE", path)

    async def browse_namespaces(args: Dict[str, Any]) -> Any:
        return await client.request(
            "GET", "/namespaces", params=pick(args, ("search", "owned_only", "per_page", "page"))
        )

    return CapabilityProvider(
        name="projects",
        operations=(
            Operation(
                name="browse_projects",
                description=(
                    "Find and inspect GitLab projects. Actions: list, get, search. "
                    "Related: manage_project to create or change projects, browse_files for repository content."
                ),
                schema=BROWSE_PROJECTS_SCHEMA,
                handler=browse_projects,
                mutates_remote_state=False,
            ),
            Operation(
                name="manage_project",
                description=(
                    "Create, update, archive or delete GitLab projects. "
                    "Related: browse_projects to look projects up."
                ),
                schema=MANAGE_PROJECT_SCHEMA,
                handler=manage_project,
            ),
            Operation(
                name="browse_namespaces",
                description="List groups and user namespaces. Related: browse_projects for projects inside them.",
                schema=BROWSE_NAMESPACES_SCHEMA,
                handler=browse_namespaces,
                mutates_remote_state=False,
            ),
        ),
    )
