"""Single-shot HTTP reachability probe."""

from __future__ import annotations

import asyncio
import time

import httpx

from statusboard.monitor.models import ServiceStatus, StatEntry, to_iso, utc_now

DEFAULT_TIMEOUT = 8.0

_clock = time.monotonic


async def probe(url: str, timeout: float = DEFAULT_TIMEOUT) -> StatEntry:
    """Probe *url* once with a HEAD request and map the outcome to a StatEntry.

    Network failures and timeouts are a valid ``offline`` sample, never an
    exception. There are no retries; the next scheduled cycle is the retry.
    """
    bound_ms = int(timeout * 1000)
    start = _clock()
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            # httpx applies the timeout per phase; wait_for bounds the whole attempt
            resp = await asyncio.wait_for(client.head(url), timeout=timeout)
    except (httpx.HTTPError, TimeoutError):
        elapsed = round((_clock() - start) * 1000)
        return StatEntry(
            timestamp=to_iso(utc_now()),
            status=ServiceStatus.OFFLINE,
            ping_ms=min(elapsed, bound_ms),
            response_time_ms=min(elapsed, bound_ms),
            request_count=0,
            uptime_percentage=0,
        )

    elapsed = round((_clock() - start) * 1000)
    ok = resp.is_success
    return StatEntry(
        timestamp=to_iso(utc_now()),
        status=ServiceStatus.OPERATIONAL if ok else ServiceStatus.DEGRADED,
        ping_ms=elapsed,
        response_time_ms=elapsed,
        request_count=1,
        uptime_percentage=100 if ok else 50,
    )
