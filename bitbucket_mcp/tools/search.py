"""
MCP Tool - bitbucket_search

Search repositories, pull requests, commits and code in a Bitbucket workspace.
"""

from typing import Optional

from fastmcp import FastMCP
from pydantic import ValidationError as PydanticValidationError

from bitbucket_mcp.errors import BitbucketError, ValidationError, format_error_for_tool
from bitbucket_mcp.schemas.search import SearchRequest, SearchScope
from bitbucket_mcp.services import SearchService


router = FastMCP("bitbucket_search")


def build_request(
    workspace_slug: Optional[str],
    query: Optional[str],
    scope: str = "all",
    repo_slug: Optional[str] = None,
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
    language: Optional[str] = None,
    extension: Optional[str] = None,
) -> SearchRequest:
    """
    Validate raw tool arguments into a SearchRequest.

    Raises:
        ValidationError: Unknown scope or out-of-range limit
    """
    try:
        search_scope = SearchScope((scope or "all").lower())
    except ValueError as e:
        allowed = ", ".join(s.value for s in SearchScope)
        raise ValidationError(f"Invalid scope {scope!r}. Use one of: {allowed}.", e) from e

    try:
        return SearchRequest(
            workspace_slug=workspace_slug,
            repo_slug=repo_slug,
            query=query,
            scope=search_scope,
            limit=limit,
            cursor=cursor,
            language=language,
            extension=extension,
        )
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid search arguments: {e.errors()[0]['msg']}", e) from e


async def execute_search(service: Optional[SearchService] = None, **arguments) -> dict:
    """Run a search and shape the result (or the error) as a tool response."""
    try:
        request = build_request(**arguments)
        service = service or SearchService()
        response = await service.search(request)
    except BitbucketError as e:
        return format_error_for_tool(e)

    result = {"content": response.content}
    if response.pagination is not None:
        result["pagination"] = response.pagination.model_dump(exclude_none=True)
    if response.scope_cursors:
        result["scope_cursors"] = {
            scope.value: cursor.model_dump() for scope, cursor in response.scope_cursors.items()
        }
    return result


@router.tool()
async def bitbucket_search(
    workspace_slug: str,
    query: Optional[str] = None,
    scope: str = "all",
    repo_slug: Optional[str] = None,
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
    language: Optional[str] = None,
    extension: Optional[str] = None,
) -> dict:
    """
    Search Bitbucket content.

    With scope "all" (default) repositories and code are searched, plus pull
    requests and commits when repo_slug is given; results come back ranked
    repositories first, code last.

    Args:
        workspace_slug: Workspace to search (falls back to BITBUCKET_DEFAULT_WORKSPACE)
        query: Text to search for
        scope: all, repositories, pullrequests, commits or code
        repo_slug: Repository to search; required for pullrequests and commits
        limit: Maximum results per scope (1-100, default 25)
        cursor: Page cursor returned by a previous search
        language: Code search language filter (e.g. python, typescript, hcl)
        extension: Code search file extension filter (e.g. tf)

    Returns:
        Markdown content plus pagination, or an error with its classification.
        scope_cursors maps each scope with more results to {cursor, limit};
        search that scope alone with both values to continue it.
    """
    return await execute_search(
        workspace_slug=workspace_slug,
        query=query,
        scope=scope,
        repo_slug=repo_slug,
        limit=limit,
        cursor=cursor,
        language=language,
        extension=extension,
    )
