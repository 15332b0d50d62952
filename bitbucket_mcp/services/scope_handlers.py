"""
Services - Scope Handlers

One handler per searchable content type. Each wraps exactly one Bitbucket
endpoint, owns its soft validation, and turns the response (or the failure)
into a ScopeResult. Handlers never raise past handle().
"""

import logging
import math
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from bitbucket_mcp.client.bitbucket_client import BitbucketClient
from bitbucket_mcp.errors import ErrorContext, classify, user_friendly_message
from bitbucket_mcp.logging_setup import scoped_logger
from bitbucket_mcp.schemas.bitbucket import (
    CodeSearchResult,
    Commit,
    PullRequest,
    Repository,
    parse_values,
)
from bitbucket_mcp.schemas.search import ScopeResult, SearchRequest, SearchScope
from bitbucket_mcp.services import formatters
from bitbucket_mcp.services.pagination import (
    PaginationStyle,
    normalize,
    parse_page_cursor,
)

DEFAULT_PAGE_SIZE = 25

# File extensions checked after the backend's own `lang:` filter
LANGUAGE_EXTENSIONS = {
    "hcl": (".tf", ".tfvars", ".hcl"),
    "terraform": (".tf", ".tfvars", ".hcl"),
    "java": (".java", ".class", ".jar"),
    "javascript": (".js", ".jsx", ".mjs"),
    "typescript": (".ts", ".tsx"),
    "python": (".py", ".pyw", ".pyc"),
    "ruby": (".rb", ".rake"),
    "go": (".go",),
    "rust": (".rs",),
    "c": (".c", ".h"),
    "cpp": (".cpp", ".cc", ".cxx", ".h", ".hpp"),
    "csharp": (".cs",),
    "php": (".php",),
    "html": (".html", ".htm"),
    "css": (".css",),
    "shell": (".sh", ".bash", ".zsh"),
    "sql": (".sql",),
    "yaml": (".yml", ".yaml"),
    "json": (".json",),
    "xml": (".xml",),
    "markdown": (".md", ".markdown"),
}


class ScopeHandler(ABC):
    """Base class for scope handler implementations."""

    scope: SearchScope
    title: str
    noun: str
    entity_type: str
    model: type
    requires_repo: bool = False

    def __init__(self, client: BitbucketClient):
        self.client = client

    def missing_precondition(self, request: SearchRequest) -> Optional[str]:
        """
        Check the inputs this scope needs.

        Returns:
            Instruction for the caller, or None when the request is usable
        """
        if self.requires_repo and not request.repo_slug:
            return (
                f"Both a workspace and a repository are required for {self.noun} search. "
                f"Provide repo_slug to search {self.noun}s."
            )
        if not request.query:
            return f"Please provide a search query for {self.noun} search."
        return None

    @abstractmethod
    async def fetch(self, request: SearchRequest, page: int, page_size: int) -> Dict[str, Any]:
        """
        Call the backend endpoint for this scope.

        Args:
            request: Resolved search request
            page: Page number (1-based)
            page_size: Number of items to ask for

        Returns:
            Decoded JSON payload
        """
        pass

    @abstractmethod
    def render(self, items: List[Any]) -> str:
        """Render parsed items as Markdown."""
        pass

    def parse(self, payload: Dict[str, Any]) -> List[Any]:
        return parse_values(self.model, payload)

    def paging(self, request: SearchRequest) -> Tuple[int, int]:
        """Page number and page size for a request."""
        return parse_page_cursor(request.cursor), request.limit or DEFAULT_PAGE_SIZE

    def build_result(
        self,
        request: SearchRequest,
        payload: Dict[str, Any],
        logger: logging.LoggerAdapter,
    ) -> ScopeResult:
        """Parse, cap and render a payload for the page the request asked for."""
        page, page_size = self.paging(request)
        items = self.parse(payload)[:page_size]
        pagination = normalize(
            payload,
            PaginationStyle.PAGE,
            requested_page=page,
            page_size=page_size,
        )
        logger.debug(
            "%s search returned %d items (page=%d, total=%s)",
            self.title,
            len(items),
            page,
            pagination.total,
        )
        return ScopeResult(
            scope=self.scope,
            body=self.render(items),
            count=len(items),
            total=pagination.total,
            pagination=pagination,
        )

    def error_context(self, request: SearchRequest) -> ErrorContext:
        return ErrorContext(
            entity_type=self.entity_type,
            operation="searching",
            source=f"services/scope_handlers.py@{type(self).__name__}",
            entity_id=request.workspace_slug,
            additional_info={"repo_slug": request.repo_slug, "query": request.query},
        )

    async def handle(
        self,
        request: SearchRequest,
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> ScopeResult:
        """
        Run this scope's search.

        Args:
            request: Search request with defaults already resolved
            logger: Logger carrying request context

        Returns:
            ScopeResult; failures come back with succeeded=False
        """
        logger = logger or scoped_logger(
            __name__,
            workspace=request.workspace_slug,
            repo=request.repo_slug,
            scope=self.scope.value,
        )

        instruction = self.missing_precondition(request)
        if instruction:
            logger.debug("Skipping %s search: %s", self.noun, instruction)
            return ScopeResult(scope=self.scope, body=instruction)

        try:
            page, page_size = self.paging(request)
            logger.debug("Searching %s (page=%d, pagelen=%d)", self.noun, page, page_size)
            payload = await self.fetch(request, page, page_size)
            result = self.build_result(request, payload, logger)
        except Exception as e:
            context = self.error_context(request)
            classification = classify(e, context)
            logger.warning(
                "%s search failed [%s]: %s",
                self.title,
                classification.code.value,
                e,
            )
            return ScopeResult(
                scope=self.scope,
                body=user_friendly_message(classification.code, context, str(e)),
                succeeded=False,
                error_code=classification.code,
                error_message=str(e),
            )

        return result


class RepositoriesHandler(ScopeHandler):
    """Repository name/description search within a workspace."""

    scope = SearchScope.REPOSITORIES
    title = "Repositories"
    noun = "repository"
    entity_type = "Repositories"
    model = Repository

    def __init__(self, client: BitbucketClient, allow_unfiltered: bool = False):
        super().__init__(client)
        self.allow_unfiltered = allow_unfiltered

    def missing_precondition(self, request: SearchRequest) -> Optional[str]:
        if not request.query and self.allow_unfiltered:
            return None
        return super().missing_precondition(request)

    async def fetch(self, request: SearchRequest, page: int, page_size: int) -> Dict[str, Any]:
        return await self.client.search_repositories(
            request.workspace_slug,
            request.query,
            page=page,
            pagelen=page_size,
        )

    def render(self, items: List[Repository]) -> str:
        return formatters.format_repositories(items)


class PullRequestsHandler(ScopeHandler):
    """Pull request title/description search, most recently updated first."""

    scope = SearchScope.PULL_REQUESTS
    title = "Pull Requests"
    noun = "pull request"
    entity_type = "Pull Requests"
    requires_repo = True
    model = PullRequest

    async def fetch(self, request: SearchRequest, page: int, page_size: int) -> Dict[str, Any]:
        return await self.client.search_pull_requests(
            request.workspace_slug,
            request.repo_slug,
            request.query,
            page=page,
            pagelen=page_size,
        )

    def render(self, items: List[PullRequest]) -> str:
        return formatters.format_pull_requests(items)


class CommitsHandler(ScopeHandler):
    """Commit message search within one repository."""

    scope = SearchScope.COMMITS
    title = "Commits"
    noun = "commit"
    entity_type = "Commits"
    requires_repo = True
    model = Commit

    async def fetch(self, request: SearchRequest, page: int, page_size: int) -> Dict[str, Any]:
        return await self.client.search_commits(
            request.workspace_slug,
            request.repo_slug,
            request.query,
            page=page,
            pagelen=page_size,
        )

    def render(self, items: List[Commit]) -> str:
        return formatters.format_commits(items)


class CodeHandler(ScopeHandler):
    """
    Workspace code search, optionally narrowed to a repository.

    The backend `lang:` filter is loose, so results are cross-checked against
    the language's file extensions and the total is re-estimated when any are
    dropped.
    """

    scope = SearchScope.CODE
    title = "Code"
    noun = "code"
    entity_type = "Code"
    model = CodeSearchResult

    async def fetch(self, request: SearchRequest, page: int, page_size: int) -> Dict[str, Any]:
        return await self.client.search_code(
            request.workspace_slug,
            request.query,
            repo_slug=request.repo_slug,
            language=request.language,
            extension=request.extension,
            page=page,
            pagelen=page_size,
        )

    def render(self, items: List[CodeSearchResult]) -> str:
        return formatters.format_code_results(items)

    def build_result(
        self,
        request: SearchRequest,
        payload: Dict[str, Any],
        logger: logging.LoggerAdapter,
    ) -> ScopeResult:
        extensions = LANGUAGE_EXTENSIONS.get((request.language or "").lower())
        values = payload.get("values") or []
        if not extensions or not values:
            return super().build_result(request, payload, logger)

        kept = [
            value for value in values
            if os.path.splitext(str((value.get("file") or {}).get("path", "")).lower())[1] in extensions
        ]
        if len(kept) == len(values):
            return super().build_result(request, payload, logger)

        size = payload.get("size")
        if not isinstance(size, int):
            size = len(values)
        estimate = max(len(kept), math.ceil(size * len(kept) / len(values)))
        logger.debug(
            "Post-filtered code results by language=%s: %d of %d kept, total %d -> %d",
            request.language,
            len(kept),
            len(values),
            size,
            estimate,
        )

        result = super().build_result(
            request,
            {**payload, "values": kept, "size": estimate},
            logger,
        )
        if not result.count:
            return result
        note = (
            f"*Results were filtered to {request.language} files; "
            f"the total of {estimate} is an estimate, not an exact count.*"
        )
        return result.model_copy(update={"body": f"{note}\n\n{result.body}"})


def build_handlers(
    client: BitbucketClient,
    allow_unfiltered_repositories: bool = False,
) -> Dict[SearchScope, ScopeHandler]:
    """Create one handler per concrete scope sharing a single client."""
    return {
        SearchScope.REPOSITORIES: RepositoriesHandler(
            client, allow_unfiltered=allow_unfiltered_repositories
        ),
        SearchScope.PULL_REQUESTS: PullRequestsHandler(client),
        SearchScope.COMMITS: CommitsHandler(client),
        SearchScope.CODE: CodeHandler(client),
    }
