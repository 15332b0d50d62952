"""
Services - Pagination Normalizer

Converts Bitbucket's page-number and cursor pagination shapes into a single
Pagination value.
"""

import logging
from enum import Enum
from typing import Any, List, Mapping, Optional
from urllib.parse import parse_qs, urlparse

from bitbucket_mcp.errors import InvalidCursorError
from bitbucket_mcp.schemas.search import Pagination

logger = logging.getLogger(__name__)


class PaginationStyle(str, Enum):
    PAGE = "page"
    CURSOR = "cursor"


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _items(raw: Mapping[str, Any]) -> List[Any]:
    for key in ("values", "results"):
        items = raw.get(key)
        if isinstance(items, list):
            return items
    return []


def _query_param(url: str, name: str) -> Optional[str]:
    if "?" not in url:
        return None
    values = parse_qs(urlparse(url).query).get(name)
    return values[0] if values else None


def parse_page_cursor(cursor: Optional[str]) -> int:
    """
    Turn a caller cursor into a page number.

    Args:
        cursor: Page number as a string, or None for the first page

    Returns:
        Page number >= 1

    Raises:
        InvalidCursorError: cursor is not a positive integer
    """
    if cursor is None:
        return 1
    page = _as_int(cursor.strip())
    if not page:
        raise InvalidCursorError(cursor)
    return page


def _normalize_page(
    raw: Mapping[str, Any],
    requested_page: Optional[int],
    page_size: Optional[int],
) -> Pagination:
    values = _items(raw)
    page = _as_int(raw.get("page")) or requested_page or 1
    pagelen = _as_int(raw.get("pagelen")) or page_size or len(values)
    total = _as_int(raw.get("size"))
    count = min(len(values), pagelen)

    if total is not None:
        has_more = page * pagelen < total
    elif "next" in raw:
        has_more = isinstance(raw["next"], str) and bool(raw["next"])
    else:
        # Best-effort guess: a full page suggests more may follow. The
        # backend does not guarantee it, so the next page can come back empty.
        has_more = pagelen > 0 and len(values) == pagelen

    next_cursor = None
    if has_more:
        next_page = page + 1
        next_url = raw.get("next")
        if isinstance(next_url, str):
            next_page = _as_int(_query_param(next_url, "page")) or next_page
        next_cursor = str(next_page)

    return Pagination(
        count=count,
        has_more=has_more,
        next_cursor=next_cursor,
        total=total,
        page=page,
        page_size=pagelen,
    )


def _normalize_cursor(raw: Mapping[str, Any]) -> Pagination:
    values = _items(raw)
    marker = raw.get("next")
    if marker is None and isinstance(raw.get("_links"), Mapping):
        marker = raw["_links"].get("next")

    next_cursor = None
    if isinstance(marker, str) and marker:
        next_cursor = _query_param(marker, "cursor") or marker

    return Pagination(
        count=len(values),
        has_more=next_cursor is not None,
        next_cursor=next_cursor,
        total=_as_int(raw.get("size")),
    )


def normalize(
    raw: Optional[Mapping[str, Any]],
    style: PaginationStyle,
    requested_page: Optional[int] = None,
    page_size: Optional[int] = None,
) -> Pagination:
    """
    Normalise a paginated API response.

    Never raises: malformed or missing fields degrade to an empty,
    non-resumable Pagination.

    Args:
        raw: Decoded JSON response (or a response-shaped mapping)
        style: PAGE (page/pagelen/size) or CURSOR (opaque next token)
        requested_page: Page asked for, used when the response omits it
        page_size: Page size asked for, used when the response omits it

    Returns:
        Pagination snapshot
    """
    if not isinstance(raw, Mapping):
        return Pagination()
    try:
        if style == PaginationStyle.PAGE:
            return _normalize_page(raw, requested_page, page_size)
        return _normalize_cursor(raw)
    except Exception as e:  # noqa: BLE001
        logger.debug("Could not normalise pagination (%s): %s", style, e)
        return Pagination()
