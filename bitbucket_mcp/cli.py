"""
Bitbucket Search - Command Line

`bitbucket-search search -w WORKSPACE -q QUERY [...]` prints the same Markdown
the MCP tool returns.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from bitbucket_mcp.config import get_settings
from bitbucket_mcp.errors import BitbucketError, classify
from bitbucket_mcp.logging_setup import configure_logging
from bitbucket_mcp.schemas.search import SearchScope
from bitbucket_mcp.services import SearchService
from bitbucket_mcp.services.formatters import format_pagination
from bitbucket_mcp.tools.search import build_request

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bitbucket-search",
        description="Search Bitbucket repositories, pull requests, commits and code",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Search content in a workspace")
    search.add_argument(
        "-w", "--workspace-slug",
        default=None,
        help="Workspace slug (default: BITBUCKET_DEFAULT_WORKSPACE)"
    )
    search.add_argument("-r", "--repo-slug", default=None, help="Repository slug")
    search.add_argument("-q", "--query", default=None, help="Search query")
    search.add_argument(
        "-s", "--scope",
        choices=[s.value for s in SearchScope],
        default=SearchScope.ALL.value,
        help="Scope to search (default: all)"
    )
    search.add_argument(
        "-l", "--limit",
        type=int,
        default=None,
        help="Maximum results per scope (1-100)"
    )
    search.add_argument("-c", "--cursor", default=None, help="Page cursor from a previous search")
    search.add_argument("--language", default=None, help="Code search language filter")
    search.add_argument("--extension", default=None, help="Code search file extension filter")
    return parser


async def run_search(args: argparse.Namespace, service: Optional[SearchService] = None) -> str:
    """Execute the search command and return the text to print."""
    request = build_request(
        workspace_slug=args.workspace_slug,
        query=args.query,
        scope=args.scope,
        repo_slug=args.repo_slug,
        limit=args.limit,
        cursor=args.cursor,
        language=args.language,
        extension=args.extension,
    )
    service = service or SearchService()
    response = await service.search(request)

    output = response.content
    if response.pagination is not None:
        footer = format_pagination(response.pagination)
        if footer:
            output += "\n\n" + footer
    return output


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    configure_logging(get_settings())

    try:
        output = asyncio.run(run_search(args))
    except BitbucketError as e:
        code = classify(e).code
        logger.error("Search failed [%s]: %s", code.value, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
