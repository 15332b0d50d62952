"""
Schemas - Search Models

Pydantic models for search requests, per-scope results and the combined response.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from bitbucket_mcp.errors import ErrorCode


class SearchScope(str, Enum):
    """Content categories a search can target."""

    REPOSITORIES = "repositories"
    PULL_REQUESTS = "pullrequests"
    COMMITS = "commits"
    CODE = "code"
    ALL = "all"


class SearchRequest(BaseModel):
    """Search input. Defaults are resolved once by the dispatcher."""

    workspace_slug: Optional[str] = None
    repo_slug: Optional[str] = None
    query: Optional[str] = None
    scope: SearchScope = SearchScope.ALL
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    cursor: Optional[str] = None
    language: Optional[str] = None
    extension: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator(
        "workspace_slug", "repo_slug", "query", "cursor", "language", "extension",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class Pagination(BaseModel):
    """Normalised pagination snapshot."""

    count: int = Field(default=0, ge=0)
    has_more: bool = False
    next_cursor: Optional[str] = None
    total: Optional[int] = Field(default=None, ge=0)
    page: Optional[int] = None
    page_size: Optional[int] = None

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def more_requires_cursor(cls, data):
        # has_more without a resumable token is treated as the end
        if isinstance(data, dict) and data.get("has_more") and not data.get("next_cursor"):
            data = {**data, "has_more": False}
        return data


class ScopeResult(BaseModel):
    """Outcome of one scope handler invocation."""

    scope: SearchScope
    body: str = ""
    count: int = Field(default=0, ge=0)
    total: Optional[int] = Field(default=None, ge=0)
    pagination: Pagination = Field(default_factory=Pagination)
    succeeded: bool = True
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def match_count(self) -> int:
        """Best known number of matches: backend total, else items returned."""
        if self.total is not None:
            return max(self.total, self.count)
        return self.count

    @property
    def visible(self) -> bool:
        return self.succeeded and self.count > 0


class ScopeCursor(BaseModel):
    """Where to resume one scope: pass both as cursor and limit."""

    cursor: str
    limit: int = Field(ge=1)

    model_config = {"frozen": True}


class AggregatedSearchResponse(BaseModel):
    """Combined search output."""

    summary: str
    sections: List[ScopeResult] = []
    pagination: Optional[Pagination] = None
    searched_scopes: List[SearchScope] = []
    scope_cursors: Dict[SearchScope, ScopeCursor] = {}

    @property
    def content(self) -> str:
        """Summary followed by each section body."""
        parts = [self.summary] + [section.body for section in self.sections]
        return "\n\n".join(part for part in parts if part)
