"""
Services Module - Search Layer

Pagination normalisation, scope handlers, aggregation and dispatch.
"""

from bitbucket_mcp.services.pagination import PaginationStyle, normalize, parse_page_cursor
from bitbucket_mcp.services.scope_handlers import (
    ScopeHandler,
    RepositoriesHandler,
    PullRequestsHandler,
    CommitsHandler,
    CodeHandler,
    build_handlers,
)
from bitbucket_mcp.services.aggregator import ResultAggregator
from bitbucket_mcp.services.search_service import SearchService

__all__ = [
    "PaginationStyle",
    "normalize",
    "parse_page_cursor",
    "ScopeHandler",
    "RepositoriesHandler",
    "PullRequestsHandler",
    "CommitsHandler",
    "CodeHandler",
    "build_handlers",
    "ResultAggregator",
    "SearchService",
]
