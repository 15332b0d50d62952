"""
Services - Result Aggregator

Fans a search out to every applicable scope concurrently and combines the
results into one ranked, capped report.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from bitbucket_mcp.errors import ErrorCode, ErrorContext, classify
from bitbucket_mcp.logging_setup import scoped_logger
from bitbucket_mcp.schemas.search import (
    AggregatedSearchResponse,
    Pagination,
    ScopeCursor,
    ScopeResult,
    SearchRequest,
    SearchScope,
)
from bitbucket_mcp.services.formatters import (
    format_search_header,
    format_section,
    plural,
)
from bitbucket_mcp.services.scope_handlers import DEFAULT_PAGE_SIZE, ScopeHandler

logger = logging.getLogger(__name__)

# Structural artifacts first, high-volume code matches last
SCOPE_PRIORITY = {
    SearchScope.REPOSITORIES: 0,
    SearchScope.PULL_REQUESTS: 1,
    SearchScope.COMMITS: 2,
    SearchScope.CODE: 3,
}

# Maximum items per section in the combined report
SCOPE_CAPS = {
    SearchScope.REPOSITORIES: 10,
    SearchScope.PULL_REQUESTS: 10,
    SearchScope.COMMITS: 10,
    SearchScope.CODE: 15,
}


def rank(results: List[ScopeResult]) -> List[ScopeResult]:
    """Order by fixed priority, then descending count, then scope name."""
    return sorted(
        results,
        key=lambda r: (SCOPE_PRIORITY[r.scope], -r.count, r.scope.value),
    )


class ResultAggregator:
    """
    The "all" search: every applicable scope handler runs concurrently and
    independently; failed or empty scopes are reported in the summary but
    left out of the sections.
    """

    def __init__(
        self,
        handlers: Dict[SearchScope, ScopeHandler],
        default_limit: int = DEFAULT_PAGE_SIZE,
    ):
        self.handlers = handlers
        self.default_limit = default_limit

    def applicable_scopes(self, request: SearchRequest) -> List[SearchScope]:
        """Repositories and Code always; pull requests and commits need a repository."""
        scopes = [SearchScope.REPOSITORIES]
        if request.repo_slug:
            scopes += [SearchScope.PULL_REQUESTS, SearchScope.COMMITS]
        scopes.append(SearchScope.CODE)
        return [scope for scope in scopes if scope in self.handlers]

    def _title(self, scope: SearchScope) -> str:
        handler = self.handlers.get(scope)
        return handler.title if handler else scope.value

    def scope_limit(self, scope: SearchScope, request: SearchRequest) -> int:
        """Page size a scope is searched with: the request limit, capped."""
        return min(request.limit or self.default_limit, SCOPE_CAPS[scope])

    async def _run(self, scope: SearchScope, request: SearchRequest) -> ScopeResult:
        """Run one handler; anything it lets escape becomes a failed result."""
        scoped_request = request.model_copy(
            update={"scope": scope, "limit": self.scope_limit(scope, request)}
        )
        scope_logger = scoped_logger(
            __name__,
            workspace=request.workspace_slug,
            repo=request.repo_slug,
            scope=scope.value,
        )
        try:
            return await self.handlers[scope].handle(scoped_request, scope_logger)
        except Exception as e:
            result = self._failed(scope, e)
            scope_logger.error(
                "%s handler raised [%s]: %s",
                self._title(scope),
                result.error_code.value,
                e,
            )
            return result

    def _failed(self, scope: SearchScope, error: Exception) -> ScopeResult:
        classification = classify(
            error,
            ErrorContext(
                entity_type=self._title(scope),
                operation="searching",
                source="services/aggregator.py@ResultAggregator",
            ),
        )
        return ScopeResult(
            scope=scope,
            succeeded=False,
            error_code=classification.code,
            error_message=str(error),
        )

    def _summary_line(self, result: ScopeResult) -> str:
        title = self._title(result.scope)
        if not result.succeeded:
            code = result.error_code or ErrorCode.UNEXPECTED_ERROR
            return f"- {title}: failed ({code.value})"
        return f"- {title}: {plural(result.match_count, 'match', 'matches')}"

    def _section(self, result: ScopeResult) -> ScopeResult:
        body = format_section(
            self._title(result.scope),
            result.body,
            shown=result.count,
            total=result.match_count,
        )
        return result.model_copy(update={"body": body})

    @staticmethod
    def merge_pagination(ranked: List[ScopeResult]) -> Pagination:
        """
        Pick one pagination snapshot for the combined report.

        Cross-scope paging does not compose: the first ranked scope with more
        results supplies the cursor, per-scope cursors are exposed separately.
        """
        for result in ranked:
            if result.pagination.has_more:
                return result.pagination
        return Pagination(count=sum(result.count for result in ranked), has_more=False)

    async def aggregate(self, request: SearchRequest) -> AggregatedSearchResponse:
        """
        Search every applicable scope and combine the results.

        Never raises: handler failures are listed as failed scopes.

        Args:
            request: Search request with workspace and defaults resolved

        Returns:
            AggregatedSearchResponse with ranked sections
        """
        scopes = self.applicable_scopes(request)
        logger.info(
            "Searching %d scopes in %s%s",
            len(scopes),
            request.workspace_slug,
            f"/{request.repo_slug}" if request.repo_slug else "",
        )

        outcomes = await asyncio.gather(
            *(self._run(scope, request) for scope in scopes),
            return_exceptions=True,
        )

        results: List[ScopeResult] = []
        for scope, outcome in zip(scopes, outcomes):
            if isinstance(outcome, Exception):
                logger.error("%s search crashed: %s", self._title(scope), outcome)
                outcome = self._failed(scope, outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)

        header = format_search_header(
            "Search results",
            request.query,
            request.workspace_slug,
            request.repo_slug,
        )
        counts = "\n".join(
            self._summary_line(result)
            for result in sorted(results, key=lambda r: SCOPE_PRIORITY[r.scope])
        )
        ranked = rank([result for result in results if result.visible])

        if not ranked:
            query = f' for "{request.query}"' if request.query else ""
            return AggregatedSearchResponse(
                summary=f"{header}\n\nNo results found in any scope{query}.\n\n{counts}",
                pagination=Pagination(),
                searched_scopes=scopes,
            )

        pagination = self.merge_pagination(ranked)
        summary = f"{header}\n\n{counts}"
        lead = self._lead_scope(ranked)
        if lead is not None:
            summary += (
                f"\n\n*More results are available; the cursor continues the "
                f"{self._title(lead)} results.*"
            )

        return AggregatedSearchResponse(
            summary=summary,
            sections=[self._section(result) for result in ranked],
            pagination=pagination,
            searched_scopes=scopes,
            scope_cursors={
                result.scope: ScopeCursor(
                    cursor=result.pagination.next_cursor,
                    limit=self.scope_limit(result.scope, request),
                )
                for result in ranked
                if result.pagination.has_more
            },
        )

    @staticmethod
    def _lead_scope(ranked: List[ScopeResult]) -> Optional[SearchScope]:
        for result in ranked:
            if result.pagination.has_more:
                return result.scope
        return None
