"""
app/api/pagination.py — Cursor Pagination
=========================================
Forward-only, Relay-shaped connections over an already-ordered list.

  first  → page size (default 10, max 50, must be >= 0)
  after  → cursor of the last edge already seen; the page starts right after it

Cursors are opaque to clients: base64("cursor:<offset>"), where offset is
the zero-based position in the ordered list. Paging with after=endCursor
therefore yields the next rows with no overlap and no gap, as long as the
underlying list is unchanged between the two calls.
"""

import base64
import binascii
from typing import Callable, Generic, Optional, Sequence, TypeVar

import strawberry

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
CURSOR_PREFIX = "cursor:"

T = TypeVar("T")


class InvalidCursor(ValueError):
    pass


# --- GRAPHQL TYPES ---

@strawberry.type
class PageInfo:
    has_next_page: bool
    has_previous_page: bool
    start_cursor: Optional[str]
    end_cursor: Optional[str]


@strawberry.type
class Edge(Generic[T]):
    cursor: str
    node: T


@strawberry.type
class Connection(Generic[T]):
    edges: list[Edge[T]]
    nodes: list[T]
    page_info: PageInfo
    total_count: int


# --- CURSORS ---

def encode_cursor(offset: int) -> str:
    return base64.b64encode(f"{CURSOR_PREFIX}{offset}".encode()).decode("ascii")


def decode_cursor(cursor: str) -> int:
    try:
        raw = base64.b64decode(cursor.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise InvalidCursor(f"Invalid cursor: {cursor!r}") from e
    if not raw.startswith(CURSOR_PREFIX):
        raise InvalidCursor(f"Invalid cursor: {cursor!r}")
    try:
        offset = int(raw[len(CURSOR_PREFIX):])
    except ValueError as e:
        raise InvalidCursor(f"Invalid cursor: {cursor!r}") from e
    if offset < 0:
        raise InvalidCursor(f"Invalid cursor: {cursor!r}")
    return offset


# --- PAGING ---

def paginate(
    items: Sequence,
    convert: Callable[[object], T],
    first: Optional[int] = None,
    after: Optional[str] = None,
) -> Connection[T]:
    """Slice one page out of `items` and wrap it as a Connection."""
    size = DEFAULT_PAGE_SIZE if first is None else first
    if size < 0:
        raise ValueError("Argument 'first' must be a non-negative integer")
    if size > MAX_PAGE_SIZE:
        raise ValueError(f"Argument 'first' cannot exceed {MAX_PAGE_SIZE}")

    start = decode_cursor(after) + 1 if after else 0
    window = items[start:start + size]

    edges = [
        Edge(cursor=encode_cursor(start + i), node=convert(item))
        for i, item in enumerate(window)
    ]
    page_info = PageInfo(
        has_next_page=start + len(window) < len(items),
        has_previous_page=start > 0,
        start_cursor=edges[0].cursor if edges else None,
        end_cursor=edges[-1].cursor if edges else None,
    )
    return Connection(
        edges=edges,
        nodes=[e.node for e in edges],
        page_info=page_info,
        total_count=len(items),
    )
