"""Paginated fetching over page-numbered GitHub listing endpoints.

Termination uses the short-page heuristic: a page with fewer items than
requested (including an empty page) is taken to be the last one. A
`ListPage` from the client is measured by what GitHub returned, not by
what survived validation. The heuristic is only correct when the
endpoint returns full pages everywhere except at the end, which holds
for standard REST listings but not for endpoints that filter results
after paginating them. There is no per-page retry here; the client
retries individual requests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import TypeVar

from contribution_tracker.github.client import ListPage

T = TypeVar("T")

PageFetcher = Callable[[int], Awaitable[Sequence[T]]]


async def paginate(
    fetch_page: PageFetcher[T],
    *,
    page_size: int,
    max_pages: int | None = None,
) -> AsyncIterator[T]:
    """Lazily yield items across pages until a short page or the page cap.

    Args:
        fetch_page: Async callable returning the items of a 1-based page
        page_size: Page size the fetcher requests (used to detect the last page)
        max_pages: Hard cap on pages fetched (None for no cap)

    Yields:
        Items in upstream order
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    page = 1
    while max_pages is None or page <= max_pages:
        items = await fetch_page(page)
        for item in items:
            yield item
        fetched = items.raw_count if isinstance(items, ListPage) else len(items)
        if fetched < page_size:
            return
        page += 1


async def fetch_all(
    fetch_page: PageFetcher[T],
    *,
    page_size: int,
    max_pages: int | None = None,
) -> list[T]:
    """Drain `paginate` into a list."""
    return [item async for item in paginate(fetch_page, page_size=page_size, max_pages=max_pages)]
