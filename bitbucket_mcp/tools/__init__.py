"""
Tools Module - MCP Tool Implementations

MCP tools for Bitbucket search.
"""

from bitbucket_mcp.tools import search

__all__ = [
    "search",
]
