"""
Client Module - Bitbucket API Access

Credentials, query helpers and the async REST client.
"""

from bitbucket_mcp.client.credentials import Credentials, get_credentials
from bitbucket_mcp.client.bitbucket_client import BitbucketClient

__all__ = [
    "Credentials",
    "get_credentials",
    "BitbucketClient",
]
