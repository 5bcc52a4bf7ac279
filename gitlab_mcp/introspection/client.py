"""GitLab REST API client

Overview
--------
Thin async HTTP client over ``/api/v4`` used by token introspection and by the
built-in providers' handlers.

- Authenticates with the ``PRIVATE-TOKEN`` header when a token is configured.
- Never retries; callers pass a per-request ``timeout`` where a bounded call
  matters (token introspection).
- Raises ``RemoteApiError`` for transport failures and non-2xx responses, with
  the status code and body attached.

Usage
-----

>>> client = GitLabApiClient("https://gitlab.example.com", token="glpat-...")
>>> user = await client.get_current_user()
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from ..core.errors import RemoteApiError

API_PREFIX = "/api/v4"


class GitLabApiClient:
    """Async client for the GitLab REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Create a GitLab API client.

        Args:
            base_url: Instance URL, with or without the ``/api/v4`` suffix.
            token: Access token sent as ``PRIVATE-TOKEN``.
            timeout: Default timeout for the internal client.
            client: Optional preconfigured ``httpx.AsyncClient`` (tests inject one
                backed by ``httpx.MockTransport``).
        """
        url = base_url.rstrip("/")
        if url.endswith(API_PREFIX):
            url = url[: -len(API_PREFIX)]
        self.base_url = url
        self.token = token
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._logger = logging.getLogger(__name__)

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.token:
            headers["PRIVATE-TOKEN"] = self.token
        return headers

    def url(self, path: str) -> str:
        return f"{self.base_url}{API_PREFIX}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` when empty).

        Raises:
            RemoteApiError: On transport errors and non-2xx responses.
        """
        kwargs: Dict[str, Any] = {"headers": self._headers()}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if json is not None:
            kwargs["json"] = json
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            r = await self._client.request(method, self.url(path), **kwargs)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteApiError(
                f"GitLab API {method} {path} failed: {e.response.status_code}",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteApiError(f"GitLab API {method} {path} failed: {e}") from e
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return r.text

    async def get_token_self(self, *, timeout: Optional[float] = None) -> Any:
        """``GET /personal_access_tokens/self``; available since GitLab 14.7."""
        return await self.request("GET", "/personal_access_tokens/self", timeout=timeout)

    async def get_current_user(self, *, timeout: Optional[float] = None) -> Any:
        return await self.request("GET", "/user", timeout=timeout)

    async def get_metadata(self, *, timeout: Optional[float] = None) -> Any:
        """``GET /metadata``: version and enterprise flag of the instance."""
        return await self.request("GET", "/metadata", timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()
