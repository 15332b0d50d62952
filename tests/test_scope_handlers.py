"""
Tests for the scope handlers
"""

import logging
from unittest.mock import MagicMock

import httpx
import pytest

from bitbucket_mcp.errors import ApiError, ErrorCode, NetworkError
from bitbucket_mcp.schemas.search import SearchRequest, SearchScope
from bitbucket_mcp.services.scope_handlers import (
    CodeHandler,
    CommitsHandler,
    PullRequestsHandler,
    RepositoriesHandler,
    build_handlers,
)
from conftest import code_hit, commit, page_payload, pull_request, repository


def make_request(**overrides) -> SearchRequest:
    fields = {"workspace_slug": "acme", "query": "auth", "limit": 25}
    fields.update(overrides)
    return SearchRequest(**fields)


class TestSoftValidation:
    """Missing preconditions produce instructions, not errors."""

    @pytest.mark.asyncio
    async def test_code_without_query(self, client):
        result = await CodeHandler(client).handle(make_request(query=None))

        assert result.succeeded is True
        assert result.count == 0
        assert "provide a search query for code search" in result.body
        client.search_code.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handler_cls", [PullRequestsHandler, CommitsHandler])
    async def test_repo_required(self, client, handler_cls):
        result = await handler_cls(client).handle(make_request())

        assert result.succeeded is True
        assert result.count == 0
        assert "repository are required" in result.body

    @pytest.mark.asyncio
    async def test_repositories_need_query_by_default(self, client):
        result = await RepositoriesHandler(client).handle(make_request(query=None))

        assert result.count == 0
        assert "search query" in result.body
        client.search_repositories.assert_not_called()

    @pytest.mark.asyncio
    async def test_repositories_unfiltered_listing(self, client):
        """Unfiltered listing only when explicitly allowed."""
        client.search_repositories.return_value = page_payload([repository(1)], size=1)

        result = await RepositoriesHandler(client, allow_unfiltered=True).handle(make_request(query=None))

        assert result.count == 1
        client.search_repositories.assert_awaited_once_with("acme", None, page=1, pagelen=25)


class TestSuccess:
    """Successful searches."""

    @pytest.mark.asyncio
    async def test_repositories(self, client):
        client.search_repositories.return_value = page_payload(
            [repository(i) for i in range(3)], pagelen=3, size=7
        )

        result = await RepositoriesHandler(client).handle(make_request(limit=3))

        assert result.scope is SearchScope.REPOSITORIES
        assert result.count == 3
        assert result.total == 7
        assert result.pagination.has_more is True
        assert result.pagination.next_cursor == "2"
        assert "acme/auth-service-0" in result.body

    @pytest.mark.asyncio
    async def test_cursor_selects_page(self, client):
        client.search_pull_requests.return_value = page_payload([pull_request(1)], page=3, pagelen=5, size=11)

        result = await PullRequestsHandler(client).handle(make_request(repo_slug="api", cursor="3", limit=5))

        client.search_pull_requests.assert_awaited_once_with("acme", "api", "auth", page=3, pagelen=5)
        assert result.count == 1
        assert result.pagination.has_more is False
        assert "#1: Fix auth token refresh #1" in result.body

    @pytest.mark.asyncio
    async def test_items_capped_to_limit(self, client):
        """Extra items from the backend never exceed the requested page size."""
        client.search_commits.return_value = page_payload([commit(i) for i in range(12)], pagelen=10)

        result = await CommitsHandler(client).handle(make_request(repo_slug="api", limit=10))

        assert result.count == 10
        assert result.body.count("### ") == 10

    @pytest.mark.asyncio
    async def test_empty_results(self, client):
        client.search_code.return_value = page_payload([], size=0)

        result = await CodeHandler(client).handle(make_request())

        assert result.succeeded is True
        assert result.count == 0
        assert result.visible is False
        assert result.body == "No code matches found."

    def test_build_result_falls_back_to_requested_page(self, client):
        """Without page fields in the payload, paging comes from the request."""
        logger = MagicMock()
        payload = {"values": [repository(i) for i in range(4)], "size": 20}

        result = RepositoriesHandler(client).build_result(make_request(cursor="3", limit=2), payload, logger)

        assert result.count == 2
        assert result.pagination.page == 3
        assert result.pagination.page_size == 2
        assert result.pagination.next_cursor == "4"
        logger.debug.assert_called_once()


class TestCodeLanguageFilter:
    """Post-filter by file extension with total re-estimation."""

    @pytest.mark.asyncio
    async def test_filter_adjusts_total(self, client):
        client.search_code.return_value = page_payload(
            [code_hit("main.tf"), code_hit("vars.tfvars"), code_hit("README.md"), code_hit("run.sh")],
            pagelen=4,
            size=40,
        )

        result = await CodeHandler(client).handle(make_request(language="hcl", limit=4))

        assert result.count == 2
        # ceil(40 * 2 / 4)
        assert result.total == 20
        assert "estimate" in result.body
        assert "README.md" not in result.body

    @pytest.mark.asyncio
    async def test_filter_keeps_everything(self, client):
        client.search_code.return_value = page_payload([code_hit("app.py")], size=1)

        result = await CodeHandler(client).handle(make_request(language="python"))

        assert result.count == 1
        assert result.total == 1
        assert "estimate" not in result.body

    @pytest.mark.asyncio
    async def test_unknown_language_not_filtered(self, client):
        client.search_code.return_value = page_payload([code_hit("a.kt"), code_hit("b.md")], size=2)

        result = await CodeHandler(client).handle(make_request(language="kotlin"))

        assert result.count == 2

    @pytest.mark.asyncio
    async def test_everything_filtered_out(self, client):
        client.search_code.return_value = page_payload([code_hit("README.md")], size=9)

        result = await CodeHandler(client).handle(make_request(language="go"))

        assert result.count == 0
        assert result.visible is False


class TestFailureIsolation:
    """Remote failures come back as failed results."""

    @pytest.mark.asyncio
    async def test_network_failure(self, client, caplog):
        client.search_commits.side_effect = NetworkError("Network error calling Bitbucket API")

        with caplog.at_level(logging.WARNING):
            result = await CommitsHandler(client).handle(make_request(repo_slug="api"))

        assert result.succeeded is False
        assert result.count == 0
        assert result.error_code is ErrorCode.NETWORK_ERROR
        assert "NETWORK_ERROR" in caplog.text

    @pytest.mark.asyncio
    async def test_api_not_found(self, client):
        client.search_repositories.side_effect = ApiError("Not found", 404)

        result = await RepositoriesHandler(client).handle(make_request())

        assert result.succeeded is False
        assert result.error_code is ErrorCode.NOT_FOUND
        assert "not found" in result.body

    @pytest.mark.asyncio
    async def test_raw_httpx_error(self, client):
        client.search_code.side_effect = httpx.ReadTimeout("timed out")

        result = await CodeHandler(client).handle(make_request())

        assert result.error_code is ErrorCode.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_invalid_cursor(self, client):
        result = await RepositoriesHandler(client).handle(make_request(cursor="next-please"))

        assert result.succeeded is False
        assert result.error_code is ErrorCode.INVALID_CURSOR
        client.search_repositories.assert_not_called()

    @pytest.mark.asyncio
    async def test_injected_logger_receives_context(self, client):
        """The handler logs through the adapter it is given."""
        client.search_code.side_effect = RuntimeError("boom")
        adapter = logging.LoggerAdapter(logging.getLogger("test.scope"), {"scope": "code"})

        records = []
        handler = logging.Handler()
        handler.emit = records.append
        logging.getLogger("test.scope").addHandler(handler)
        try:
            await CodeHandler(client).handle(make_request(), adapter)
        finally:
            logging.getLogger("test.scope").removeHandler(handler)

        assert any(getattr(r, "scope", None) == "code" for r in records)


class TestBuildHandlers:
    """Handler registry."""

    def test_one_handler_per_scope(self, client):
        handlers = build_handlers(client)

        assert set(handlers) == {
            SearchScope.REPOSITORIES,
            SearchScope.PULL_REQUESTS,
            SearchScope.COMMITS,
            SearchScope.CODE,
        }
        assert handlers[SearchScope.REPOSITORIES].allow_unfiltered is False
        assert build_handlers(client, allow_unfiltered_repositories=True)[
            SearchScope.REPOSITORIES
        ].allow_unfiltered is True
