"""
Services - Markdown Formatters

Renders Bitbucket search payloads as Markdown for tool and CLI output.
"""

import os
from datetime import datetime, timezone
from typing import List, Optional

from bitbucket_mcp.schemas.bitbucket import (
    CodeSearchResult,
    Commit,
    PullRequest,
    Repository,
)
from bitbucket_mcp.schemas.search import Pagination

DESCRIPTION_LIMIT = 150

LANGUAGE_HINTS = {
    ".js": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".py": "python",
    ".java": "java",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".c": "c",
    ".cpp": "cpp",
    ".h": "c",
    ".hpp": "cpp",
    ".tf": "terraform",
    ".hcl": "hcl",
    ".sh": "bash",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".xml": "xml",
    ".md": "markdown",
    ".sql": "sql",
}


def format_date(value: Optional[str]) -> str:
    """ISO timestamp -> 'YYYY-MM-DD HH:MM:SS UTC'."""
    if not value:
        return "Not available"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_url(url: Optional[str], title: Optional[str] = None) -> str:
    if not url:
        return "Not available"
    return f"[{title or url}]({url})"


def _truncate(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit] + "..."


def plural(count: int, word: str, plural_word: Optional[str] = None) -> str:
    if count == 1:
        return f"1 {word}"
    return f"{count} {plural_word or word + 's'}"


def format_repositories(repositories: List[Repository]) -> str:
    if not repositories:
        return "No repositories found matching your query."

    blocks = []
    for index, repo in enumerate(repositories, start=1):
        url = repo.links.html.href if repo.links.html else None
        owner = (repo.owner.display_name or repo.owner.username) if repo.owner else None
        lines = [
            f"### {index}. {repo.name}",
            f"- **Full Name**: {repo.full_name}",
            f"- **Description**: {_truncate(repo.description) if repo.description else 'No description provided'}",
            f"- **Owner**: {owner or 'Unknown'}",
            f"- **Project**: {repo.project.key if repo.project and repo.project.key else 'N/A'}",
            f"- **Language**: {repo.language or 'N/A'}",
            f"- **Private**: {'Yes' if repo.is_private else 'No'}",
            f"- **Updated**: {format_date(repo.updated_on)}",
            f"- **URL**: {format_url(url, repo.full_name)}",
        ]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_pull_requests(pull_requests: List[PullRequest]) -> str:
    if not pull_requests:
        return "No pull requests found matching your query."

    blocks = []
    for pr in pull_requests:
        url = pr.links.html.href if pr.links.html else None
        author = (pr.author.display_name or pr.author.nickname) if pr.author else None
        description = pr.summary.raw if pr.summary and pr.summary.raw else ""
        lines = [
            f"### #{pr.id}: {pr.title}",
            f"- **State**: {pr.state or 'Unknown'}",
            f"- **Author**: {author or 'Unknown'}",
            f"- **Branches**: {pr.source.branch.name or 'Unknown'} → {pr.destination.branch.name or 'Unknown'}",
            f"- **Updated**: {format_date(pr.updated_on)}",
            f"- **Description**: {_truncate(description) if description.strip() else 'No description provided'}",
            f"- **URL**: {format_url(url, f'PR #{pr.id}')}",
        ]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_commits(commits: List[Commit]) -> str:
    if not commits:
        return "No commits found matching your query."

    blocks = []
    for commit in commits:
        first_line = commit.message.split("\n", 1)[0]
        author = commit.author.user.display_name if commit.author.user else None
        url = commit.links.html.href if commit.links.html else None
        heading = f"{commit.hash[:7]}: {first_line}"
        lines = [
            f"### {format_url(url, heading) if url else heading}",
            f"- **Author**: {author or commit.author.raw or 'Unknown'}",
            f"- **Date**: {format_date(commit.date)}",
            f"- **Full Hash**: `{commit.hash}`",
        ]
        if "\n" in commit.message.strip():
            lines.append("")
            lines.append("```")
            lines.append(commit.message.strip())
            lines.append("```")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def language_hint(path: str) -> str:
    return LANGUAGE_HINTS.get(os.path.splitext(path)[1].lower(), "")


def format_code_results(results: List[CodeSearchResult]) -> str:
    if not results:
        return "No code matches found."

    blocks = []
    for result in results:
        path = result.file.path or "Unknown File"
        link = result.file.links.self_link.href if result.file.links.self_link else None
        lines = [
            f"### {format_url(link, path) if link else path}",
            "",
            f"{plural(result.content_match_count, 'match', 'matches')} found",
            "",
            "```" + language_hint(path),
        ]
        for match in result.content_matches:
            for line in match.lines:
                text = "".join(
                    f"**{segment.text}**" if segment.match else segment.text
                    for segment in line.segments
                )
                lines.append(f"{line.line}: {text}")
        lines.append("```")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_search_header(
    title: str,
    query: Optional[str],
    workspace_slug: str,
    repo_slug: Optional[str] = None,
) -> str:
    location = f"{workspace_slug}/{repo_slug}" if repo_slug else workspace_slug
    if query:
        return f'# {title} for "{query}" in {location}'
    return f"# {title} in {location}"


def format_section(title: str, body: str, shown: int, total: int) -> str:
    """A titled section, stating the true total when not everything is shown."""
    lines = [f"## {title}", "", body]
    if total > shown:
        lines.append("")
        lines.append(f"*Showing {shown} of {plural(total, 'match', 'matches')}.*")
    return "\n".join(lines)


def format_pagination(pagination: Pagination) -> str:
    """Footer describing the current page and how to fetch the next."""
    parts = []
    if pagination.total:
        parts.append(f"*Showing {pagination.count} of {pagination.total} total items.*")
    elif pagination.count:
        parts.append(f"*Showing {pagination.count} item{'s' if pagination.count != 1 else ''}.*")
    if pagination.has_more:
        parts.append("More results are available.")
        parts.append(f'\nTo see more results, use --cursor "{pagination.next_cursor}"')
    return " ".join(parts).strip()
