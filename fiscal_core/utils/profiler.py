"""
Cost measurement for sweep-backed commands.

A sweep issues one request per upstream page and holds the whole collection in
memory, so `--profile` reports three numbers: wall time, peak resident memory,
and how much resident memory grew while the block ran (roughly the size of the
materialized collection plus its parsed models).

Usage:
    from fiscal_core.utils.profiler import profile_block

    with profile_block("daily-records") as stats:
        buckets = await repo.daily_counts()

    print(f"{stats.duration_seconds:.2f}s, +{stats.rss_growth_mb:.1f} MB")
"""

from __future__ import annotations

import contextlib
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil


@dataclass
class ProfileStats:
    """Measurements for one profiled block."""

    label: str
    duration_seconds: float = 0.0
    baseline_rss_bytes: Optional[int] = None
    peak_rss_bytes: Optional[int] = None
    samples: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def peak_rss_mb(self) -> Optional[float]:
        if self.peak_rss_bytes is None:
            return None
        return self.peak_rss_bytes / (1024 * 1024)

    @property
    def rss_growth_mb(self) -> Optional[float]:
        if self.peak_rss_bytes is None or self.baseline_rss_bytes is None:
            return None
        return max(self.peak_rss_bytes - self.baseline_rss_bytes, 0) / (1024 * 1024)


class _RssSampler(threading.Thread):
    """
    Polls the process RSS until stopped and keeps the maximum.
    """

    def __init__(self, interval_seconds: float) -> None:
        super().__init__(name="rss-sampler", daemon=True)
        self._process = psutil.Process()
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self.baseline = self._process.memory_info().rss
        self.peak = self.baseline
        self.samples = 1

    def run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                rss = self._process.memory_info().rss
            except psutil.Error:
                return
            self.samples += 1
            if rss > self.peak:
                self.peak = rss

    def stop(self) -> None:
        self._stop_event.set()
        self.join(timeout=1.0)


@contextlib.contextmanager
def profile_block(label: str, sample_interval_ms: int = 50) -> Generator[ProfileStats, None, None]:
    """
    Profile the enclosed block.

    Parameters
    ----------
    label : str
        Name shown next to the measurements.
    sample_interval_ms : int
        RSS polling interval. Short sweeps need a short interval to catch the peak.
    """
    stats = ProfileStats(label=label)
    sampler = _RssSampler(sample_interval_ms / 1000.0)
    sampler.start()
    start = time.perf_counter()
    try:
        yield stats
    finally:
        stats.duration_seconds = time.perf_counter() - start
        sampler.stop()
        stats.baseline_rss_bytes = sampler.baseline
        stats.peak_rss_bytes = sampler.peak
        stats.samples = sampler.samples


__all__ = ["ProfileStats", "profile_block"]
