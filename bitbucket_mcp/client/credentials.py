"""
Client - Credentials

Resolves Bitbucket authentication from settings.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from bitbucket_mcp.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Basic-auth pair for the Bitbucket API."""
    username: str
    secret: str
    method: str  # "app_password" or "api_token"

    @property
    def auth(self) -> Tuple[str, str]:
        return (self.username, self.secret)


def get_credentials(settings=None) -> Optional[Credentials]:
    """
    Get Bitbucket credentials from settings.

    Bitbucket app passwords are preferred; an Atlassian account email plus
    API token is accepted as a fallback.

    Args:
        settings: Settings instance (default: loaded from environment)

    Returns:
        Credentials, or None when neither pair is configured
    """
    settings = settings or get_settings()
    bb = settings.bitbucket

    if bb.username and bb.app_password:
        logger.debug("Using Bitbucket app password credentials")
        return Credentials(bb.username, bb.app_password, "app_password")

    if bb.user_email and bb.api_token:
        logger.debug("Using Atlassian API token credentials")
        return Credentials(bb.user_email, bb.api_token, "api_token")

    logger.warning(
        "Missing Bitbucket credentials. Set ATLASSIAN_BITBUCKET_USERNAME and "
        "ATLASSIAN_BITBUCKET_APP_PASSWORD, or ATLASSIAN_USER_EMAIL and ATLASSIAN_API_TOKEN."
    )
    return None
