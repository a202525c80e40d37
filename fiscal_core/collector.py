"""
Exhaustive pagination sweeps.

The backend only answers one page at a time, so anything that needs the whole
collection (cross-page search, stats, daily charts) drives the list client
across every page and materializes the result in memory.

Pages are fetched strictly one after another: each request's page number comes
from the previous response. A sweep is the most latency-costly primitive in the
package (one round trip per page); use it only when a cross-page computation is
unavoidable.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Hashable, List, Optional, Set

from fiscal_core.config import get_settings
from fiscal_core.domain.models import Page, Record
from fiscal_core.errors import SweepTruncatedError
from fiscal_core.infrastructure.http_client import FetchPage
from fiscal_core.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class SweepStats:
    """
    What the last sweep did. `truncated` means the page ceiling stopped it
    while the upstream still reported more data.
    """

    label: str
    pages: int = 0
    items: int = 0
    duplicates: int = 0
    truncated: bool = False
    duration_seconds: float = 0.0
    page_numbers: List[int] = field(default_factory=list)


def _next_page_number(page: Page, requested: int) -> int:
    declared = page.pagination.next_page
    if declared is not None and declared > requested:
        return declared
    return requested + 1


class PaginationCollector:
    """
    Drives a `page -> Page` callable until the upstream reports no more data.

    Parameters
    ----------
    max_pages : int | None
        Hard ceiling on iterations. Defaults to settings.sweep_max_pages.
    strict : bool | None
        Raise SweepTruncatedError instead of returning a truncated set.
        Defaults to settings.sweep_strict.
    label : str
        Name used in logs (usually the collection).
    """

    def __init__(
        self,
        max_pages: Optional[int] = None,
        strict: Optional[bool] = None,
        label: str = "collection",
    ) -> None:
        settings = get_settings()
        self.max_pages = max(max_pages or settings.sweep_max_pages, 1)
        self.strict = settings.sweep_strict if strict is None else strict
        self.label = label
        self.last_sweep: Optional[SweepStats] = None

    async def collect(self, fetch_page: FetchPage) -> List[Record]:
        """
        Fetch every page and return all records, deduplicated by id.

        Any page failure propagates; a partial set is never returned.
        """
        stats = SweepStats(label=self.label)
        records: List[Record] = []
        seen: Set[Hashable] = set()
        page_number = 1
        start = time.perf_counter()

        log.info(f"[SWEEP START] {self.label}", extra={"collection": self.label})
        while True:
            page = await fetch_page(page_number)
            stats.pages += 1
            stats.page_numbers.append(page_number)

            for record in page.items:
                if record.id in seen:
                    stats.duplicates += 1
                    continue
                seen.add(record.id)
                records.append(record)

            log.debug(
                f"[SWEEP PAGE] {self.label} page={page_number}",
                extra={
                    "collection": self.label,
                    "page": page_number,
                    "items": len(page.items),
                    "has_next": page.pagination.has_next,
                },
            )

            if not page.pagination.has_next:
                break
            if stats.pages >= self.max_pages:
                stats.truncated = True
                break
            page_number = _next_page_number(page, page_number)

        stats.items = len(records)
        stats.duration_seconds = time.perf_counter() - start
        self.last_sweep = stats

        if stats.truncated:
            log.warning(
                f"[SWEEP TRUNCATED] {self.label} stopped at {stats.pages} pages",
                extra={"collection": self.label, "pages": stats.pages, "items": stats.items},
            )
            if self.strict:
                raise SweepTruncatedError(self.label, stats.pages, stats.items)

        log.info(
            f"[SWEEP COMPLETE] {self.label}",
            extra={
                "collection": self.label,
                "pages": stats.pages,
                "items": stats.items,
                "duplicates": stats.duplicates,
                "duration": round(stats.duration_seconds, 3),
            },
        )
        return records


async def collect_all(
    fetch_page: FetchPage,
    *,
    max_pages: Optional[int] = None,
    strict: Optional[bool] = None,
    label: str = "collection",
) -> List[Record]:
    """Convenience wrapper: one sweep with a throwaway collector."""
    collector = PaginationCollector(max_pages=max_pages, strict=strict, label=label)
    return await collector.collect(fetch_page)


__all__ = ["PaginationCollector", "SweepStats", "collect_all"]
