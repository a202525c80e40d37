from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from fiscal_core.aggregator import aggregate, normalize_category, parse_timestamp
from fiscal_core.domain.models import Record

LIMA = timezone(timedelta(hours=-5))
WEEK = 7


def _record(record_id: int, created_at: str | None, record_type: str | None = None) -> Record:
    return Record.model_validate({"id": record_id, "createdAt": created_at, "type": record_type})


def test_aggregate_buckets_whole_local_day() -> None:
    records = [_record(1, "2024-01-01T10:00"), _record(2, "2024-01-01T23:59")]

    buckets = aggregate(records, window_days=1, now="2024-01-01")

    assert len(buckets) == 1
    assert buckets[0].key == "2024-01-01"
    assert buckets[0].label == "01/01"
    assert buckets[0].total == 2


def test_aggregate_returns_window_oldest_first_with_zero_fill() -> None:
    buckets = aggregate([], window_days=WEEK, now=date(2024, 3, 10))

    assert [b.key for b in buckets] == [
        "2024-03-04",
        "2024-03-05",
        "2024-03-06",
        "2024-03-07",
        "2024-03-08",
        "2024-03-09",
        "2024-03-10",
    ]
    assert buckets[0].label == "04/03"
    assert all(b.counts == {"conforme": 0, "noconforme": 0} for b in buckets)
    assert all(b.total == 0 for b in buckets)


def test_aggregate_normalizes_categories() -> None:
    records = [
        _record(1, "2024-03-10T08:00:00", "CONFORME"),
        _record(2, "2024-03-10T09:00:00", "No_Conforme"),
        _record(3, "2024-03-10T10:00:00", "no conforme"),
        _record(4, "2024-03-10T11:00:00", "OTRO"),
    ]

    (bucket,) = aggregate(records, window_days=1, now=datetime(2024, 3, 10, 18, 0))

    assert bucket.counts == {"conforme": 1, "noconforme": 2}
    assert bucket.total == 4


def test_aggregate_skips_unparseable_and_out_of_window_dates() -> None:
    records = [
        _record(1, "not-a-date", "conforme"),
        _record(2, None, "conforme"),
        _record(3, "2024-02-01T10:00:00", "conforme"),
        _record(4, "2024-03-09T10:00:00", "conforme"),
    ]

    buckets = aggregate(records, window_days=2, now="2024-03-10")

    assert [b.total for b in buckets] == [1, 0]
    assert sum(b.total for b in buckets) == 1


def test_aggregate_uses_local_date_for_aware_timestamps() -> None:
    # 03:00 UTC on Jan 1st is still Dec 31st in UTC-5.
    records = [_record(1, "2024-01-01T03:00:00Z", "conforme")]

    buckets = aggregate(records, window_days=2, now=date(2024, 1, 1), tz=LIMA)

    assert [(b.key, b.total) for b in buckets] == [("2023-12-31", 1), ("2024-01-01", 0)]


def test_aggregate_reads_configured_date_field() -> None:
    record = Record.model_validate({"id": 1, "inspectionDateTime": "2024-03-10T07:00:00"})

    (bucket,) = aggregate(
        [record], window_days=1, now="2024-03-10", date_field="inspectionDateTime"
    )

    assert bucket.total == 1


def test_aggregate_rejects_empty_window() -> None:
    with pytest.raises(ValueError):
        aggregate([], window_days=0)


def test_normalize_category_vocabulary() -> None:
    assert normalize_category("CONFORME ") == "conforme"
    assert normalize_category("no-conforme") == "noconforme"
    assert normalize_category("otro") is None
    assert normalize_category(None) is None
    assert normalize_category("Grave", vocabulary=("leve", "grave")) == "grave"


def test_parse_timestamp_accepts_trailing_z() -> None:
    parsed = parse_timestamp("2024-05-01T12:30:00Z")

    assert parsed == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    assert parse_timestamp("garbage") is None
    assert parse_timestamp(12345) is None
