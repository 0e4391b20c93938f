"""Rolling stat window maintenance and display-resolution bucketing."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from statusboard.monitor.models import ServiceStatus, StatEntry, to_epoch_ms, utc_now

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

WINDOW_MAX_AGE = timedelta(days=90)

TIME_RANGES: dict[str, int] = {
    "1h": HOUR_MS,
    "24h": 24 * HOUR_MS,
    "7d": 7 * DAY_MS,
    "30d": 30 * DAY_MS,
    "60d": 60 * DAY_MS,
    "90d": 90 * DAY_MS,
}

# Worst first
STATUS_PRIORITY: tuple[ServiceStatus, ...] = (
    ServiceStatus.OFFLINE,
    ServiceStatus.DEGRADED,
    ServiceStatus.MAINTENANCE,
    ServiceStatus.OPERATIONAL,
)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def update_sliding_window(
    history: Sequence[StatEntry],
    new_entry: StatEntry,
    max_age: timedelta = WINDOW_MAX_AGE,
) -> list[StatEntry]:
    """Append *new_entry* and drop entries older than *max_age* relative to it.

    Age is measured from the new entry's timestamp, not the wall clock. The
    same entry passed twice is appended twice.
    """
    now = new_entry.epoch_ms
    max_age_ms = max_age.total_seconds() * 1000
    kept = [entry for entry in history if now - entry.epoch_ms <= max_age_ms]
    kept.append(new_entry)
    kept.sort(key=lambda entry: entry.epoch_ms)
    return kept


def period_for_range(range_ms: int) -> int:
    if range_ms <= HOUR_MS:
        return MINUTE_MS
    if range_ms <= 24 * HOUR_MS:
        return HOUR_MS
    return DAY_MS


def stats_for_range(
    entries: Sequence[StatEntry],
    range_ms: int,
    now: datetime | None = None,
) -> list[StatEntry]:
    """Entries no older than *range_ms* before *now*."""
    now_ms = to_epoch_ms(now or utc_now())
    return [e for e in entries if now_ms - e.epoch_ms <= range_ms]


def _reduce_bucket(entries: list[StatEntry]) -> StatEntry:
    present = {e.status for e in entries}
    status = next((s for s in STATUS_PRIORITY if s in present), ServiceStatus.OPERATIONAL)
    operational = sum(1 for e in entries if e.status is ServiceStatus.OPERATIONAL)
    return StatEntry(
        timestamp=entries[-1].timestamp,
        status=status,
        ping_ms=max(e.ping_ms for e in entries),
        response_time_ms=max(e.response_time_ms for e in entries),
        request_count=sum(e.request_count for e in entries),
        uptime_percentage=_round_half_up(operational / len(entries) * 100),
    )


def aggregate_by_period(
    samples: Sequence[StatEntry],
    range_ms: int,
    now: datetime | None = None,
) -> list[StatEntry]:
    """Downsample *samples* into fixed-width bars covering the last *range_ms*.

    Returns exactly ``ceil(range_ms / period)`` entries, oldest first. Bars
    with no samples are placeholders; nothing is interpolated. Each filled bar
    reports the worst status, the peak latencies, the summed request count and
    the share of operational samples.
    """
    period_ms = period_for_range(range_ms)
    max_bars = math.ceil(range_ms / period_ms)
    window_start = to_epoch_ms(now or utc_now()) - range_ms

    buckets: dict[int, list[StatEntry]] = {}
    for sample in samples:
        if sample.is_placeholder:
            continue
        ts = sample.epoch_ms
        if ts < window_start:
            continue
        index = (ts - window_start) // period_ms
        if index >= max_bars:
            continue
        buckets.setdefault(index, []).append(sample)

    bars: list[StatEntry] = []
    for i in range(max_bars):
        entries = buckets.get(i)
        bars.append(_reduce_bucket(entries) if entries else StatEntry.placeholder())
    return bars


@dataclass
class StatsMetrics:
    avg_ping: int = 0
    avg_response: int = 0
    avg_uptime: int = 0
    total_requests: int = 0
    success_rate: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "avgPing": self.avg_ping,
            "avgResponse": self.avg_response,
            "avgUptime": self.avg_uptime,
            "totalRequests": self.total_requests,
            "successRate": self.success_rate,
        }


def calculate_metrics(entries: Sequence[StatEntry]) -> StatsMetrics:
    """Summary figures for a list of real (non-placeholder) entries."""
    real = [e for e in entries if not e.is_placeholder]
    if not real:
        return StatsMetrics()
    n = len(real)
    return StatsMetrics(
        avg_ping=_round_half_up(sum(e.ping_ms for e in real) / n),
        avg_response=_round_half_up(sum(e.response_time_ms for e in real) / n),
        avg_uptime=_round_half_up(sum(e.uptime_percentage for e in real) / n),
        total_requests=sum(e.request_count for e in real),
        success_rate=_round_half_up(
            sum(1 for e in real if e.status is ServiceStatus.OPERATIONAL) / n * 100
        ),
    )
