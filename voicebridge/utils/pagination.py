"""Filtering and fixed-size paging for the offline datasets.

Page sizes match the remote backend's defaults so callers see the same
page boundaries in both modes.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urlencode

from voicebridge.models.api_models import PagedResult

LESSONS_PAGE_SIZE = 6
HISTORY_PAGE_SIZE = 20

LESSONS_PATH = "/api/assistant/topic-lessons"
HISTORY_PATH = "/api/logs/query-history"

# Filter value meaning "no constraint"
ALL = "all"


def is_unconstrained(value: Optional[str]) -> bool:
    """True for None, blank strings and ``"all"``."""
    return value is None or not str(value).strip() or str(value).strip().lower() == ALL


def lesson_filter_params(
    language: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None
) -> Dict[str, str]:
    """Query parameters for a lesson listing, leaving out unconstrained filters."""
    params = {}
    if not is_unconstrained(language):
        params["language"] = language
    if not is_unconstrained(category):
        params["category"] = category
    if search and search.strip():
        params["search"] = search
    return params


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def filter_lessons(
    lessons: Iterable[Any],
    language: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None
) -> List[Any]:
    """
    Apply the language, category and free-text filters (combined with AND).

    The search is a case-insensitive substring match over title and body.
    Order of the input is preserved.
    """
    filtered = list(lessons)

    if not is_unconstrained(language):
        filtered = [lesson for lesson in filtered if _field(lesson, "language") == language]
    if not is_unconstrained(category):
        filtered = [lesson for lesson in filtered if _field(lesson, "category") == category]
    if search and search.strip():
        needle = search.strip().lower()
        filtered = [
            lesson for lesson in filtered
            if needle in str(_field(lesson, "title") or "").lower()
            or needle in str(_field(lesson, "body") or "").lower()
        ]

    return filtered


def _locator(path: str, params: Optional[Mapping[str, Any]], page: int) -> str:
    query = dict(params or {})
    query["page"] = page
    return f"{path}?{urlencode(query)}"


def paginate(
    items: Sequence[Any],
    page: int,
    page_size: int,
    path: str,
    params: Optional[Mapping[str, Any]] = None
) -> PagedResult:
    """
    Slice ``items`` into the requested page.

    Args:
        items: Ordered collection to page through
        page: 1-indexed page number; values below 1 are treated as 1
        page_size: Number of items per page
        path: Resource path used to build the next/previous locators
        params: Extra query parameters carried into the locators

    Returns:
        PagedResult with the page's items, the total count and the
        next/previous locators. Pages past the end are empty, never an error.

    Raises:
        ValueError: If page_size is not positive
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    page = max(1, int(page))
    start = (page - 1) * page_size
    end = start + page_size
    total = len(items)

    return PagedResult(
        results=list(items[start:end]),
        count=total,
        next=_locator(path, params, page + 1) if end < total else None,
        previous=_locator(path, params, page - 1) if page > 1 else None,
    )
