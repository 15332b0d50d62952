"""
Bitbucket MCP Server - Main Entry Point

FastMCP server with STDIO and SSE transport support.
"""

import argparse

from fastmcp import FastMCP

from bitbucket_mcp.config import get_settings
from bitbucket_mcp.logging_setup import configure_logging
from bitbucket_mcp.tools import search


def create_app() -> FastMCP:
    """Create and configure the MCP application."""
    mcp = FastMCP(
        name="bitbucket-mcp",
        instructions="Search repositories, pull requests, commits and code in Bitbucket",
    )

    mcp.mount(search.router)

    return mcp


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Bitbucket MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default=None,
        help="Transport protocol (default: from env)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for SSE transport (default: from env)"
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings)
    transport = args.transport or settings.mcp.transport
    port = args.port or settings.mcp.port

    mcp = create_app()

    if transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport="sse", host=settings.mcp.host, port=port)


if __name__ == "__main__":
    main()
