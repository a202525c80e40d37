"""
Time-bucketed aggregation for dashboard charts.

Folds a complete record set into one bucket per local calendar day over a
trailing window ending today. Buckets use local dates, not UTC, because "today"
on the dashboard is the operator's today.

Usage:
    from fiscal_core.aggregator import aggregate

    buckets = aggregate(records, window_days=7, now=datetime.now())
    for bucket in buckets:
        print(bucket.label, bucket.counts.get("conforme", 0), bucket.total)
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional, Union

from fiscal_core.domain.models import Record, TimeBucket
from fiscal_core.utils.logging import get_logger

log = get_logger(__name__)

CATEGORY_VOCABULARY: tuple[str, ...] = ("conforme", "noconforme")

_CATEGORY_NOISE = re.compile(r"[\s_\-]+")


def normalize_category(
    raw: Optional[str], vocabulary: Iterable[str] = CATEGORY_VOCABULARY
) -> Optional[str]:
    """
    "No_Conforme" -> "noconforme", "CONFORME " -> "conforme", "otro" -> None.
    """
    if not raw:
        return None
    key = _CATEGORY_NOISE.sub("", raw.lower())
    return key if key in set(vocabulary) else None


def parse_timestamp(value: object) -> Optional[datetime]:
    """ISO-8601 timestamp (trailing Z allowed) or None when it does not parse."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def local_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    """
    Calendar date of `moment` in `tz` (system local zone when None).

    Naive datetimes are already local and are taken as-is.
    """
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(tz).date()


def _reference_date(now: Union[datetime, date, str, None], tz: Optional[tzinfo]) -> date:
    if now is None:
        return datetime.now(tz).date() if tz else datetime.now().date()
    if isinstance(now, str):
        parsed = parse_timestamp(now)
        if parsed is None:
            raise ValueError(f"Unparseable reference date: {now!r}")
        now = parsed
    if isinstance(now, datetime):
        return local_date(now, tz)
    return now


def aggregate(
    all_records: Iterable[Record],
    window_days: int = 7,
    now: Union[datetime, date, str, None] = None,
    *,
    tz: Optional[tzinfo] = None,
    date_field: str = "created_at",
    vocabulary: Iterable[str] = CATEGORY_VOCABULARY,
) -> List[TimeBucket]:
    """
    Count records per local day over the `window_days` days ending at `now`.

    Buckets come back oldest first. Records with an unparseable date, or dated
    outside the window, are skipped. Categories outside `vocabulary` count
    toward the day's total only.
    """
    if window_days < 1:
        raise ValueError("window_days must be >= 1")
    vocabulary = tuple(vocabulary)
    today = _reference_date(now, tz)
    days = [today - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]

    totals: Counter[date] = Counter()
    per_category: Dict[date, Counter[str]] = {day: Counter() for day in days}
    skipped = 0

    for record in all_records:
        moment = parse_timestamp(record.value(date_field))
        if moment is None:
            skipped += 1
            continue
        day = local_date(moment, tz)
        if day not in per_category:
            continue
        totals[day] += 1
        category = normalize_category(record.record_type, vocabulary)
        if category is not None:
            per_category[day][category] += 1

    if skipped:
        log.debug(
            "Skipped records with unparseable dates",
            extra={"skipped": skipped, "date_field": date_field},
        )

    return [
        TimeBucket(
            key=day.isoformat(),
            label=day.strftime("%d/%m"),
            counts={name: per_category[day][name] for name in vocabulary},
            total=totals[day],
        )
        for day in days
    ]


__all__ = [
    "CATEGORY_VOCABULARY",
    "aggregate",
    "local_date",
    "normalize_category",
    "parse_timestamp",
]
