"""Repository file tools."""

from __future__ import annotations

from typing import Any, Dict

from ..capabilities.base import CapabilityProvider, Operation
from ..capabilities.schema import ActionBranch, DiscriminatedSchema, ParamSpec, ParamType
from ..introspection.client import GitLabApiClient
from ._util import encode_id, pick

_PROJECT_ID = ParamSpec(name="project_id", required=True, description="Project ID or URL-encoded path")
_FILE_PATH = ParamSpec(name="file_path", required=True, description="Path of the file in the repository")
_BRANCH = ParamSpec(name="branch", required=True, description="Branch to commit to")
_COMMIT_MESSAGE = ParamSpec(name="commit_message", required=True, description="Commit message")

BROWSE_FILES_SCHEMA = DiscriminatedSchema(
    branches=[
        ActionBranch(
            action="tree",
            description="List a directory",
            params=[
                _PROJECT_ID,
                ParamSpec(name="path", description="Directory path, repository root by default"),
                ParamSpec(name="ref", description="Branch, tag or commit"),
                ParamSpec(name="recursive", type=ParamType.boolean, description="Include nested entries"),
                ParamSpec(name="per_page", type=ParamType.integer),
            ],
        ),
        ActionBranch(
            action="content",
            description="Read one file",
            params=[_PROJECT_ID, _FILE_PATH, ParamSpec(name="ref", description="Branch, tag or commit")],
        ),
    ]
)

MANAGE_FILES_SCHEMA = DiscriminatedSchema(
    branches=[
        ActionBranch(
            action="create",
            description="Create a file",
            params=[_PROJECT_ID, _FILE_PATH, _BRANCH, ParamSpec(name="content", required=True), _COMMIT_MESSAGE],
        ),
        ActionBranch(
            action="update",
            description="Replace the content of a file",
            params=[_PROJECT_ID, _FILE_PATH, _BRANCH, ParamSpec(name="content", required=True), _COMMIT_MESSAGE],
        ),
        ActionBranch(
            action="delete",
            description="Delete a file",
            params=[_PROJECT_ID, _FILE_PATH, _BRANCH, _COMMIT_MESSAGE],
        ),
    ]
)

_WRITE_METHODS = {"create": "POST", "update": "PUT", "delete": "DELETE"}


def build_provider(client: GitLabApiClient) -> CapabilityProvider:
    async def browse_files(args: Dict[str, Any]) -> Any:
        project = encode_id(args["project_id"])
        if args["action"] == "content":
            return await client.request(
                "GET",
                f"/projects/{project}/repository/files/{encode_id(args['file_path'])}",
                params={"ref": args.get("ref") or "HEAD"},
            )
        return await client.request(
            "GET", f"/projects/{project}/repository/tree", params=pick(args, ("path", "ref", "recursive", "per_page"))
        )

    async def manage_files(args: Dict[str, Any]) -> Any:
        path = f"/projects/{encode_id(args['project_id'])}/repository/files/{encode_id(args['file_path'])}"
        return await client.request(
            _WRITE_METHODS[args["action"]], path, json=pick(args, ("branch", "content", "commit_message"))
        )

    return CapabilityProvider(
        name="files",
        operations=(
            Operation(
                name="browse_files",
                description=(
                    "Browse repository trees and read file content. "
                    "Related: manage_files to change files, browse_projects to find the project."
                ),
                schema=BROWSE_FILES_SCHEMA,
                handler=browse_files,
                mutates_remote_state=False,
            ),
            Operation(
                name="manage_files",
                description="Create, update or delete repository files. Related: browse_files to read them first.",
                schema=MANAGE_FILES_SCHEMA,
                handler=manage_files,
            ),
        ),
    )
