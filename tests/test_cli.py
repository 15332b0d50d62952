"""
Tests for the bitbucket-search command line
"""

from unittest.mock import AsyncMock, patch

import pytest

from bitbucket_mcp import cli
from bitbucket_mcp.errors import ValidationError
from bitbucket_mcp.schemas.search import AggregatedSearchResponse, Pagination


class TestParser:
    """Argument parsing."""

    def test_short_flags(self):
        args = cli.build_parser().parse_args(
            ["search", "-w", "acme", "-r", "api", "-q", "auth", "-s", "commits", "-l", "5", "-c", "2"]
        )

        assert args.workspace_slug == "acme"
        assert args.repo_slug == "api"
        assert args.query == "auth"
        assert args.scope == "commits"
        assert args.limit == 5
        assert args.cursor == "2"

    def test_scope_defaults_to_all(self):
        args = cli.build_parser().parse_args(["search", "-q", "auth"])

        assert args.scope == "all"

    def test_unknown_scope_rejected(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["search", "-s", "wiki"])


class TestRunSearch:
    """Output text."""

    @pytest.mark.asyncio
    async def test_pagination_footer(self):
        service = AsyncMock()
        service.search.return_value = AggregatedSearchResponse(
            summary="# Results",
            pagination=Pagination(count=10, has_more=True, next_cursor="2", total=30),
        )
        args = cli.build_parser().parse_args(["search", "-w", "acme", "-q", "auth"])

        output = await cli.run_search(args, service)

        assert output.startswith("# Results")
        assert "*Showing 10 of 30 total items.*" in output
        assert 'use --cursor "2"' in output


class TestMain:
    """Exit codes."""

    def test_success_exits_zero(self, capsys):
        with patch.object(cli, "run_search", AsyncMock(return_value="Please provide a search query.")), \
                patch.object(cli, "configure_logging"):
            status = cli.main(["search", "-w", "acme", "-s", "code"])

        assert status == 0
        assert "Please provide a search query." in capsys.readouterr().out

    def test_error_exits_one(self, capsys):
        error = ValidationError("workspace_slug is required")
        with patch.object(cli, "run_search", AsyncMock(side_effect=error)), \
                patch.object(cli, "configure_logging"):
            status = cli.main(["search", "-q", "auth"])

        assert status == 1
        assert "Error: workspace_slug is required" in capsys.readouterr().err
