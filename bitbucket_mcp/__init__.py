"""
Bitbucket MCP Server

Federated search across Bitbucket repositories, pull requests, commits and code.
"""

__version__ = "0.1.0"
