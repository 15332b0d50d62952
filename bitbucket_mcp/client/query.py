"""
Client - Query Helpers

Builds Bitbucket query-language filters (`q=`) and code search strings.
"""

import re
from typing import Optional, Sequence

# A query containing any of these is already written in Bitbucket's syntax
OPERATOR_PATTERN = re.compile(r"[~=!<>]")

# Backend `lang:` names for common aliases
CODE_LANGUAGE_ALIASES = {
    "hcl": "terraform",
    "tf": "terraform",
    "typescript": "ts",
    "javascript": "js",
    "python": "py",
}


def _quote(text: str) -> str:
    if text.startswith('"') and text.endswith('"') and len(text) > 1:
        return text
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def format_bitbucket_query(query: str, fields: Sequence[str] = ("name",)) -> str:
    """
    Turn free text into a fuzzy match over one or more fields.

    Examples:
        format_bitbucket_query("vue3") -> 'name ~ "vue3"'
        format_bitbucket_query("api", ("title", "description"))
            -> '(title ~ "api" OR description ~ "api")'
        format_bitbucket_query('name = "repo"') -> 'name = "repo"' (unchanged)
    """
    if not query or not query.strip():
        return query
    if OPERATOR_PATTERN.search(query):
        return query

    quoted = _quote(query.strip())
    clauses = [f"{field} ~ {quoted}" for field in fields]
    if len(clauses) == 1:
        return clauses[0]
    return "(" + " OR ".join(clauses) + ")"


def build_code_search_query(
    query: str,
    repo_slug: Optional[str] = None,
    language: Optional[str] = None,
    extension: Optional[str] = None,
) -> str:
    """Compose the `search_query` string for the code search endpoint."""
    parts = [query]
    if repo_slug:
        parts.append(f"repo:{repo_slug}")
    if language:
        lang = language.lower()
        parts.append(f"lang:{CODE_LANGUAGE_ALIASES.get(lang, lang)}")
    if extension:
        parts.append(f"ext:{extension.lstrip('.')}")
    return " ".join(parts)
