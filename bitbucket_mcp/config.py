"""
Bitbucket MCP Server - Configuration

Pydantic Settings for all configuration via environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional, Literal


class BitbucketSettings(BaseSettings):
    """Bitbucket API configuration."""
    api_base_url: str = Field("https://api.bitbucket.org", alias="BITBUCKET_API_BASE_URL")
    username: Optional[str] = Field(None, alias="ATLASSIAN_BITBUCKET_USERNAME")
    app_password: Optional[str] = Field(None, alias="ATLASSIAN_BITBUCKET_APP_PASSWORD")
    user_email: Optional[str] = Field(None, alias="ATLASSIAN_USER_EMAIL")
    api_token: Optional[str] = Field(None, alias="ATLASSIAN_API_TOKEN")
    default_workspace: Optional[str] = Field(None, alias="BITBUCKET_DEFAULT_WORKSPACE")
    timeout_seconds: float = Field(30.0, alias="BITBUCKET_TIMEOUT_SECONDS")

    model_config = {"env_prefix": "", "extra": "ignore"}


class SearchSettings(BaseSettings):
    """Search defaults."""
    default_page_size: int = Field(25, alias="SEARCH_DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(100, alias="SEARCH_MAX_PAGE_SIZE")

    model_config = {"env_prefix": "", "extra": "ignore"}


class MCPSettings(BaseSettings):
    """MCP server configuration."""
    transport: Literal["sse", "stdio"] = Field("stdio", alias="MCP_TRANSPORT")
    port: int = Field(8080, alias="MCP_PORT")
    host: str = Field("0.0.0.0", alias="MCP_HOST")

    model_config = {"env_prefix": "", "extra": "ignore"}


class LogSettings(BaseSettings):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", alias="LOG_LEVEL"
    )
    format: Literal["json", "text"] = Field("text", alias="LOG_FORMAT")

    model_config = {"env_prefix": "", "extra": "ignore"}


class Settings(BaseSettings):
    """Main settings aggregating all configuration."""
    bitbucket: BitbucketSettings = Field(default_factory=BitbucketSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    mcp: MCPSettings = Field(default_factory=MCPSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = {"env_prefix": "", "extra": "ignore"}


def get_settings() -> Settings:
    """Load settings from environment variables."""
    from dotenv import load_dotenv
    load_dotenv()
    return Settings()
