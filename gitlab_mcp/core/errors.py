"""Error taxonomy.

User-visible failures of the capability surface are limited to four kinds:

- ``NotFoundError``: the name is absent from the current cache. Names that never
  existed and names filtered out by policy are reported identically.
- ``ValidationError``: arguments fail the operation's parameter schema.
- ``DeniedActionError``: the action value parses but was removed by deny rules.
- ``UpstreamError``: the operation's own execution failed.

``DuplicateOperationError`` is a startup failure raised while aggregating
providers. ``RemoteApiError`` is raised by the GitLab REST client.
"""

from __future__ import annotations

from typing import Any, List, Optional


class CapabilityError(Exception):
    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class NotFoundError(CapabilityError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool '{tool_name}' not found")


class ValidationError(CapabilityError):
    def __init__(self, tool_name: str, message: str, errors: Optional[List[Any]] = None) -> None:
        super().__init__(tool_name, f"Invalid arguments for '{tool_name}': {message}")
        self.errors = errors or []


class DeniedActionError(CapabilityError):
    def __init__(self, tool_name: str, action: str) -> None:
        super().__init__(tool_name, f"Action '{action}' is not allowed for tool '{tool_name}'")
        self.action = action


class UpstreamError(CapabilityError):
    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(tool_name, f"Tool '{tool_name}' failed: {message}")


class DuplicateOperationError(CapabilityError):
    def __init__(self, tool_name: str, first_provider: str, second_provider: str) -> None:
        super().__init__(
            tool_name,
            f"Tool '{tool_name}' is declared by both '{first_provider}' and '{second_provider}'",
        )
        self.first_provider = first_provider
        self.second_provider = second_provider


class RemoteApiError(Exception):
    """Base error for GitLab REST API failures.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code associated with the failure.
        details: Optional structured payload from the server (e.g., JSON body).
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details
