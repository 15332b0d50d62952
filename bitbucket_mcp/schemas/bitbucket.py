"""
Schemas - Bitbucket Models

Pydantic models for the subset of Bitbucket API payloads the search renders.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class Link(BaseModel):
    href: str


class Links(BaseModel):
    html: Optional[Link] = None
    self_link: Optional[Link] = Field(None, alias="self")


class Account(BaseModel):
    display_name: Optional[str] = None
    nickname: Optional[str] = None
    username: Optional[str] = None


class Project(BaseModel):
    key: Optional[str] = None
    name: Optional[str] = None


class Repository(BaseModel):
    """Repository as returned by /2.0/repositories/{workspace}."""
    name: str
    full_name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    is_private: bool = False
    language: Optional[str] = None
    owner: Optional[Account] = None
    project: Optional[Project] = None
    updated_on: Optional[str] = None
    links: Links = Links()


class Branch(BaseModel):
    name: Optional[str] = None


class BranchRef(BaseModel):
    branch: Branch = Branch()


class Summary(BaseModel):
    raw: Optional[str] = None


class PullRequest(BaseModel):
    """Pull request as returned by the pullrequests endpoint."""
    id: int
    title: str
    state: Optional[str] = None
    author: Optional[Account] = None
    summary: Optional[Summary] = None
    source: BranchRef = BranchRef()
    destination: BranchRef = BranchRef()
    updated_on: Optional[str] = None
    links: Links = Links()


class CommitAuthor(BaseModel):
    raw: Optional[str] = None
    user: Optional[Account] = None


class Commit(BaseModel):
    """Commit as returned by the commits endpoint."""
    hash: str
    message: str = ""
    date: Optional[str] = None
    author: CommitAuthor = CommitAuthor()
    links: Links = Links()


class Segment(BaseModel):
    text: str = ""
    match: bool = False


class MatchLine(BaseModel):
    line: int
    segments: List[Segment] = []


class ContentMatch(BaseModel):
    lines: List[MatchLine] = []


class CodeFile(BaseModel):
    path: str
    links: Links = Links()


class CodeSearchResult(BaseModel):
    """One file hit from /2.0/workspaces/{workspace}/search/code."""
    content_match_count: int = 0
    content_matches: List[ContentMatch] = []
    file: CodeFile


def parse_values(model: type, payload: Dict[str, Any]) -> list:
    """Validate the `values` array of a paginated payload into models."""
    return [model.model_validate(item) for item in payload.get("values") or []]
