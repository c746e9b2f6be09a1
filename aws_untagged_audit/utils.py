"""Shared helpers for pagination, blocking calls and bounded worker pools."""
from __future__ import annotations

import asyncio
import functools
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 100


class PageTimeoutError(asyncio.TimeoutError):
    """Raised when a single page fetch does not finish within its timeout."""


@dataclass(frozen=True)
class PageRequest:
    """Parameters for one page call.

    ``cursor`` is the ``next_cursor`` returned by the previous page and is only
    meaningful for token-paginated APIs.
    """

    offset: int
    limit: int
    cursor: Optional[str] = None


@dataclass
class Page:
    """Items returned by one page call plus optional continuation hints."""

    items: List[Any] = field(default_factory=list)
    has_more: Optional[bool] = None
    total: Optional[int] = None
    next_cursor: Optional[str] = None


PageFetcher = Callable[[PageRequest], Any]


async def run_blocking(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Await *func*, running plain callables in a worker thread."""

    if inspect.iscoroutinefunction(func):
        return await func(*args, **kwargs)
    result = await asyncio.to_thread(functools.partial(func, *args, **kwargs))
    if inspect.isawaitable(result):
        return await result
    return result


def _has_more(page: Page, request: PageRequest, page_size: int) -> bool:
    if page.next_cursor:
        return True
    if page.has_more is not None:
        return page.has_more
    if page.total is not None:
        return request.offset + page_size < page.total
    return len(page.items) >= page_size


async def paginate(
    fetch_page: PageFetcher,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
    page_timeout: Optional[float] = None,
) -> List[Any]:
    """Fetch every page from *fetch_page* sequentially and return all items.

    Offsets start at 0 and advance by ``page_size``. The listing ends when a
    page signals no more data or after ``max_pages`` calls, whichever comes
    first. A page that exceeds ``page_timeout`` raises :class:`PageTimeoutError`
    and the items gathered so far are discarded.
    """

    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    if max_pages < 1:
        raise ValueError("max_pages must be at least 1")

    items: List[Any] = []
    cursor: Optional[str] = None
    for page_number in range(max_pages):
        request = PageRequest(offset=page_number * page_size, limit=page_size, cursor=cursor)
        try:
            page = await asyncio.wait_for(run_blocking(fetch_page, request), page_timeout)
        except asyncio.TimeoutError as exc:
            raise PageTimeoutError(
                f"Page at offset {request.offset} timed out after {page_timeout}s"
            ) from exc

        if page is None:
            break
        items.extend(page.items or [])
        if not _has_more(page, request, page_size):
            break
        cursor = page.next_cursor
    else:
        logger.debug("Stopped paginating after %d pages", max_pages)
    return items


class ClaimCursor(Generic[T]):
    """Hands out work items so that each one is claimed exactly once."""

    def __init__(self, items: Sequence[T]) -> None:
        self._items = list(items)
        self._counter = itertools.count()
        self.claimed: List[T] = []

    def __len__(self) -> int:
        return len(self._items)

    def claim(self) -> Optional[T]:
        """Return the next unclaimed item, or ``None`` once exhausted."""

        index = next(self._counter)
        if index >= len(self._items):
            return None
        item = self._items[index]
        self.claimed.append(item)
        return item


async def run_worker_pool(
    items: Sequence[T],
    handle: Callable[[T], Awaitable[None]],
    concurrency: int,
) -> ClaimCursor[T]:
    """Process *items* with at most *concurrency* workers sharing one cursor.

    ``handle`` is responsible for isolating its own failures; an exception
    escaping it is a programming error and propagates.
    """

    cursor: ClaimCursor[T] = ClaimCursor(items)

    async def worker() -> None:
        while True:
            item = cursor.claim()
            if item is None:
                return
            await handle(item)

    workers = min(max(concurrency, 1), len(cursor))
    if workers:
        await asyncio.gather(*(worker() for _ in range(workers)))
    return cursor


def split_names(value: Union[str, Iterable[Optional[str]], None]) -> Tuple[str, ...]:
    """Split, trim and de-duplicate a comma separated list, keeping order."""

    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    parts = (part for entry in value if entry is not None for part in str(entry).split(","))
    cleaned = (part.strip() for part in parts)
    return tuple(dict.fromkeys(part for part in cleaned if part))


def batch_iterable(items: Sequence[T], size: int) -> Iterable[Sequence[T]]:
    """Yield slices of *items* with at most ``size`` members."""

    for i in range(0, len(items), size):
        yield items[i : i + size]


def first_present(item: Mapping[str, Any], fields: Sequence[str], default: str = "") -> str:
    """Return the first non-empty value of *fields* in *item* as a string."""

    for name in fields:
        value = item.get(name)
        if value not in (None, ""):
            return str(value)
    return default


__all__ = [
    "ClaimCursor",
    "DEFAULT_MAX_PAGES",
    "DEFAULT_PAGE_SIZE",
    "Page",
    "PageRequest",
    "PageTimeoutError",
    "batch_iterable",
    "first_present",
    "paginate",
    "run_blocking",
    "run_worker_pool",
    "split_names",
]
