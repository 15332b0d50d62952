"""
Services - Search Service

Scope dispatcher: resolves request defaults once, enforces the workspace
precondition, and routes to a single scope handler or the aggregator.
"""

import logging
from typing import Optional

from bitbucket_mcp.client.bitbucket_client import BitbucketClient
from bitbucket_mcp.config import get_settings
from bitbucket_mcp.errors import DEFAULT_STATUS, BitbucketError, ErrorCode, ValidationError
from bitbucket_mcp.logging_setup import scoped_logger
from bitbucket_mcp.schemas.search import (
    AggregatedSearchResponse,
    ScopeCursor,
    ScopeResult,
    SearchRequest,
    SearchScope,
)
from bitbucket_mcp.services.aggregator import ResultAggregator
from bitbucket_mcp.services.formatters import format_search_header, format_section
from bitbucket_mcp.services.scope_handlers import build_handlers

logger = logging.getLogger(__name__)


class SearchService:
    """Routes a search request to the matching scope handler(s)."""

    def __init__(self, settings=None, client: Optional[BitbucketClient] = None):
        self.settings = settings or get_settings()
        self.client = client or BitbucketClient(self.settings)
        # Only a direct repositories search may list without a query
        self.handlers = build_handlers(self.client, allow_unfiltered_repositories=True)
        self.aggregator = ResultAggregator(
            build_handlers(self.client),
            default_limit=self.settings.search.default_page_size,
        )

    def resolve_defaults(self, request: SearchRequest) -> SearchRequest:
        """
        Fill in workspace and limit from configuration.

        Raises:
            ValidationError: No workspace given and none configured
        """
        workspace = request.workspace_slug or self.settings.bitbucket.default_workspace
        if not workspace:
            raise ValidationError(
                "workspace_slug is required. Provide a workspace slug or set "
                "BITBUCKET_DEFAULT_WORKSPACE."
            )
        limit = min(
            request.limit or self.settings.search.default_page_size,
            self.settings.search.max_page_size,
        )
        return request.model_copy(update={"workspace_slug": workspace, "limit": limit})

    async def search(self, request: SearchRequest) -> AggregatedSearchResponse:
        """
        Run a search.

        Args:
            request: Caller's search request

        Returns:
            AggregatedSearchResponse (single section for a single scope)

        Raises:
            ValidationError: Missing workspace
            BitbucketError: A single-scope search failed remotely
        """
        request = self.resolve_defaults(request)
        logger.info(
            "Search scope=%s workspace=%s repo=%s query=%r",
            request.scope.value,
            request.workspace_slug,
            request.repo_slug,
            request.query,
        )

        if request.scope is SearchScope.ALL:
            if not request.query:
                return AggregatedSearchResponse(
                    summary="Please provide a search query to search across all scopes.",
                )
            return await self.aggregator.aggregate(request)

        handler = self.handlers[request.scope]
        result = await handler.handle(
            request,
            scoped_logger(
                __name__,
                workspace=request.workspace_slug,
                repo=request.repo_slug,
                scope=request.scope.value,
            ),
        )

        if not result.succeeded:
            raise self._scope_error(result)

        if not result.visible:
            return AggregatedSearchResponse(
                summary=result.body,
                pagination=result.pagination,
                searched_scopes=[request.scope],
            )

        header = format_search_header(
            f"{handler.title} results",
            request.query,
            request.workspace_slug,
            request.repo_slug,
        )
        section = result.model_copy(
            update={
                "body": format_section(
                    handler.title, result.body, result.count, result.match_count
                )
            }
        )
        return AggregatedSearchResponse(
            summary=header,
            sections=[section],
            pagination=result.pagination,
            searched_scopes=[request.scope],
            scope_cursors=(
                {
                    request.scope: ScopeCursor(
                        cursor=result.pagination.next_cursor, limit=request.limit
                    )
                }
                if result.pagination.has_more
                else {}
            ),
        )

    @staticmethod
    def _scope_error(result: ScopeResult) -> BitbucketError:
        code = result.error_code or ErrorCode.UNEXPECTED_ERROR
        return BitbucketError(
            result.body or result.error_message or "Search failed",
            status_code=DEFAULT_STATUS[code],
            code=code,
        )
