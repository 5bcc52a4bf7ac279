"""``manage_context``: session context and credential introspection.

The tool only changes local session state, so it stays available in
read-only mode.
"""

from __future__ import annotations

from typing import Any, Dict

from ..capabilities.base import CapabilityProvider, Operation
from ..capabilities.schema import ActionBranch, DiscriminatedSchema, ParamSpec, ParamType
from ..introspection.service import CredentialIntrospector
from ..session.context import ContextManager

MANAGE_CONTEXT_SCHEMA = DiscriminatedSchema(
    branches=[
        ActionBranch(action="show", description="Show the current session context"),
        ActionBranch(action="list_presets", description="List available presets"),
        ActionBranch(
            action="switch_preset",
            description="Activate a preset; the tool list is refreshed",
            params=[ParamSpec(name="preset", required=True, description="Preset name")],
        ),
        ActionBranch(
            action="set_scope",
            description="Focus the session on a group or project",
            params=[
                ParamSpec(name="namespace", required=True, description="Group or project path"),
                ParamSpec(name="include_subgroups", type=ParamType.boolean, description="Defaults to true"),
                ParamSpec(name="type", enum=["project", "group"], description="Skip path-based detection"),
            ],
        ),
        ActionBranch(action="reset", description="Restore the startup preset and clear the scope"),
        ActionBranch(
            action="whoami",
            description="Identity, token scopes, instance info and capability summary; re-checks token scopes",
        ),
    ]
)


def build_provider(context: ContextManager, introspector: CredentialIntrospector) -> CapabilityProvider:
    async def manage_context(args: Dict[str, Any]) -> Any:
        action = args["action"]
        if action == "show":
            return context.get_context().model_dump(by_alias=True)
        if action == "list_presets":
            return [p.model_dump(by_alias=True) for p in context.list_presets()]
        if action == "switch_preset":
            return (await context.switch_preset(args["preset"])).model_dump(by_alias=True)
        if action == "set_scope":
            include = args.get("include_subgroups")
            scope = context.set_scope(
                args["namespace"],
                include_subgroups=True if include is None else include,
                scope_type=args.get("type"),
            )
            return scope.model_dump(by_alias=True)
        if action == "reset":
            return (await context.reset()).model_dump(by_alias=True)
        return (await introspector.whoami()).model_dump(by_alias=True)

    return CapabilityProvider(
        name="context",
        operations=(
            Operation(
                name="manage_context",
                description=(
                    "Inspect and change the session: presets, namespace scope and token identity (whoami). "
                    "Related: browse_projects to pick a project for set_scope."
                ),
                schema=MANAGE_CONTEXT_SCHEMA,
                handler=manage_context,
                mutates_remote_state=False,
            ),
        ),
    )
