"""
Shared fixtures: isolated environment, settings and Bitbucket payload builders.
"""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from bitbucket_mcp.client.bitbucket_client import BitbucketClient
from bitbucket_mcp.config import Settings

ENV_VARS = [
    "BITBUCKET_API_BASE_URL",
    "ATLASSIAN_BITBUCKET_USERNAME",
    "ATLASSIAN_BITBUCKET_APP_PASSWORD",
    "ATLASSIAN_USER_EMAIL",
    "ATLASSIAN_API_TOKEN",
    "BITBUCKET_DEFAULT_WORKSPACE",
    "BITBUCKET_TIMEOUT_SECONDS",
    "SEARCH_DEFAULT_PAGE_SIZE",
    "SEARCH_MAX_PAGE_SIZE",
    "MCP_TRANSPORT",
    "MCP_HOST",
    "MCP_PORT",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(monkeypatch) -> Settings:
    monkeypatch.setenv("ATLASSIAN_BITBUCKET_USERNAME", "dev")
    monkeypatch.setenv("ATLASSIAN_BITBUCKET_APP_PASSWORD", "app-secret")
    return Settings()


@pytest.fixture
def client() -> AsyncMock:
    """BitbucketClient double; each endpoint method is an AsyncMock."""
    return AsyncMock(spec=BitbucketClient)


def page_payload(
    values: List[Dict[str, Any]],
    page: int = 1,
    pagelen: int = 25,
    size: Optional[int] = None,
) -> Dict[str, Any]:
    payload = {"values": values, "page": page, "pagelen": pagelen}
    if size is not None:
        payload["size"] = size
    return payload


def repository(i: int) -> Dict[str, Any]:
    return {
        "name": f"auth-service-{i}",
        "full_name": f"acme/auth-service-{i}",
        "description": "Authentication service",
        "links": {"html": {"href": f"https://bitbucket.org/acme/auth-service-{i}"}},
    }


def pull_request(i: int) -> Dict[str, Any]:
    return {
        "id": i,
        "title": f"Fix auth token refresh #{i}",
        "state": "OPEN",
        "source": {"branch": {"name": f"feature/auth-{i}"}},
        "destination": {"branch": {"name": "main"}},
    }


def commit(i: int) -> Dict[str, Any]:
    return {
        "hash": f"{i:07d}abcdef0123456789",
        "message": f"Fix auth bug {i}",
        "author": {"raw": "Dev <dev@example.com>"},
    }


def code_hit(path: str) -> Dict[str, Any]:
    return {
        "content_match_count": 1,
        "content_matches": [
            {"lines": [{"line": 3, "segments": [{"text": "def "}, {"text": "auth", "match": True}]}]}
        ],
        "file": {"path": path},
    }
