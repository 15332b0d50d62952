"""
Client - Bitbucket REST Client

Single-attempt GET requests against the Bitbucket Cloud 2.0 API.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from bitbucket_mcp.client.credentials import Credentials, get_credentials
from bitbucket_mcp.client.query import build_code_search_query, format_bitbucket_query
from bitbucket_mcp.config import get_settings
from bitbucket_mcp.errors import ApiError, AuthMissingError, NetworkError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull the most useful message out of a vendor error body."""
    default = f"{response.status_code} {response.reason_phrase}".strip()
    try:
        body = response.json()
    except ValueError:
        return default
    if not isinstance(body, dict):
        return default

    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return errors[0].get("title") or errors[0].get("message") or default
    if isinstance(body.get("message"), str):
        return body["message"]
    nested = body.get("error")
    if isinstance(nested, dict) and nested.get("message"):
        return nested["message"]
    return default


class BitbucketClient:
    """Thin async wrapper over the Bitbucket search-capable endpoints."""

    def __init__(
        self,
        settings=None,
        credentials: Optional[Credentials] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.bitbucket.api_base_url.rstrip("/")
        self.credentials = credentials or get_credentials(self.settings)
        self.timeout = self.settings.bitbucket.timeout_seconds
        self._transport = transport

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET a JSON document.

        Args:
            path: API path starting with /2.0
            params: Query parameters; None values are dropped

        Returns:
            Decoded JSON object

        Raises:
            AuthMissingError: No credentials configured
            ApiError: Non-2xx response (status and vendor body attached)
            NetworkError: Transport failure or timeout
        """
        if self.credentials is None:
            raise AuthMissingError()

        query = {k: v for k, v in (params or {}).items() if v is not None}
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug("GET %s params=%s", url, query)

        async with httpx.AsyncClient(
            auth=self.credentials.auth,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        ) as client:
            try:
                response = await client.get(url, params=query)
            except httpx.TransportError as e:
                raise NetworkError(f"Network error calling Bitbucket API: {e}", e) from e

        if response.is_error:
            message = _error_message(response)
            logger.debug("Bitbucket API error %s: %s", response.status_code, response.text)
            raise ApiError(message, response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from Bitbucket API: {e}", response.status_code) from e

    async def search_repositories(
        self,
        workspace_slug: str,
        query: Optional[str],
        page: int = 1,
        pagelen: int = 25,
    ) -> Dict[str, Any]:
        """List repositories in a workspace whose name or description matches."""
        params = {
            "q": format_bitbucket_query(query, ("name", "description")) if query else None,
            "sort": "-updated_on",
            "pagelen": pagelen,
            "page": page,
        }
        return await self.get_json(f"/2.0/repositories/{workspace_slug}", params)

    async def search_pull_requests(
        self,
        workspace_slug: str,
        repo_slug: str,
        query: str,
        page: int = 1,
        pagelen: int = 25,
    ) -> Dict[str, Any]:
        """Pull requests whose title or description matches, newest update first."""
        params = {
            "q": format_bitbucket_query(query, ("title", "description")),
            "sort": "-updated_on",
            "pagelen": pagelen,
            "page": page,
        }
        return await self.get_json(
            f"/2.0/repositories/{workspace_slug}/{repo_slug}/pullrequests", params
        )

    async def search_commits(
        self,
        workspace_slug: str,
        repo_slug: str,
        query: str,
        page: int = 1,
        pagelen: int = 25,
    ) -> Dict[str, Any]:
        """Commits whose message matches."""
        params = {
            "q": format_bitbucket_query(query, ("message",)),
            "pagelen": pagelen,
            "page": page,
        }
        return await self.get_json(
            f"/2.0/repositories/{workspace_slug}/{repo_slug}/commits", params
        )

    async def search_code(
        self,
        workspace_slug: str,
        query: str,
        repo_slug: Optional[str] = None,
        language: Optional[str] = None,
        extension: Optional[str] = None,
        page: int = 1,
        pagelen: int = 25,
    ) -> Dict[str, Any]:
        """Workspace code search, optionally narrowed to one repository."""
        params = {
            "search_query": build_code_search_query(query, repo_slug, language, extension),
            "pagelen": pagelen,
            "page": page,
        }
        return await self.get_json(f"/2.0/workspaces/{workspace_slug}/search/code", params)
