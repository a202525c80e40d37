"""
Client-side search and artificial pagination.

The backend can only filter on one field per request, so cross-field search runs
over a complete in-memory set (see `collector`) and the page metadata is rebuilt
from the filtered result. The server's page boundaries mean nothing for a
filtered set and are never reused.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from fiscal_core.domain.models import Page, PageDescriptor, Record

DEFAULT_SEARCH_FIELDS: tuple[str, ...] = ("vehicle_plate", "document_number", "record_type")
DEFAULT_MIN_LENGTH = 2


def should_search(query: str | None, min_length: int = DEFAULT_MIN_LENGTH) -> bool:
    """True when the query is long enough to justify a full sweep."""
    return bool(query) and len(query.strip()) >= min_length


def matches(record: Record, needle: str, fields: Sequence[str]) -> bool:
    """Case-insensitive substring match on any of `fields` (logical OR)."""
    for path in fields:
        value = record.value(path)
        if value is None:
            continue
        if needle in str(value).casefold():
            return True
    return False


def filter_records(
    records: Iterable[Record], query: str, fields: Sequence[str] = DEFAULT_SEARCH_FIELDS
) -> List[Record]:
    needle = query.strip().casefold()
    if not needle:
        return list(records)
    return [record for record in records if matches(record, needle, fields)]


def paginate(records: Sequence[Record], page_size: int, page: int) -> Page:
    """
    Slice an in-memory set and compute its page metadata.

    An out-of-range page yields an empty, well-formed page; `current_page`
    stays within [1, total_pages] whenever there is data.
    """
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    page = max(page, 1)
    total = len(records)
    total_pages = math.ceil(total / page_size)
    start = (page - 1) * page_size
    items = list(records[start : start + page_size])

    current = min(page, total_pages) if total else page
    return Page(
        items=items,
        pagination=PageDescriptor(
            current_page=current,
            total_pages=total_pages,
            total_records=total,
            records_per_page=page_size,
            has_next=page * page_size < total,
            has_previous=page > 1,
            next_page=page + 1 if page * page_size < total else None,
        ),
    )


def search(
    all_records: Sequence[Record],
    query: str,
    page_size: int,
    page: int,
    fields: Sequence[str] = DEFAULT_SEARCH_FIELDS,
) -> Page:
    """
    Filter `all_records` by `query` and return the requested artificial page.

    Pure: the same inputs always produce the same page.
    """
    return paginate(filter_records(all_records, query, fields), page_size, page)


__all__ = [
    "DEFAULT_MIN_LENGTH",
    "DEFAULT_SEARCH_FIELDS",
    "filter_records",
    "matches",
    "paginate",
    "search",
    "should_search",
]
