"""
Schemas Module - Pydantic Models

Data models for search requests/results and Bitbucket API payloads.
"""

from bitbucket_mcp.schemas.search import (
    SearchScope,
    SearchRequest,
    Pagination,
    ScopeCursor,
    ScopeResult,
    AggregatedSearchResponse,
)
from bitbucket_mcp.schemas.bitbucket import (
    Repository,
    PullRequest,
    Commit,
    CodeSearchResult,
)

__all__ = [
    "SearchScope",
    "SearchRequest",
    "Pagination",
    "ScopeCursor",
    "ScopeResult",
    "AggregatedSearchResponse",
    "Repository",
    "PullRequest",
    "Commit",
    "CodeSearchResult",
]
