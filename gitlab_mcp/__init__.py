"""gitlab_mcp: policy-filtered capability registry for a GitLab MCP server.

The package keeps a catalog of named operations contributed by providers and
exposes only the subset permitted by the current policy inputs: read-only mode,
credential scopes, GitLab version/tier and administrator deny rules.

Entry point: :func:`gitlab_mcp.factory.build_application`.
"""

__version__ = "0.1.0"
