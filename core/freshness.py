from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from core.cache import CacheStore
from core.outcome import CachedFresh, CachedStale, FetchOutcome, Failed, Fresh
from metrics.base import ErrorKind, MetricFetchError, MetricSource, Reading, now_utc

log = logging.getLogger("scanmonitor.engine")

STALE_THRESHOLD = timedelta(minutes=10)
QUERY_WINDOW = timedelta(hours=2)
DEFAULT_FETCH_TIMEOUT_S = 15.0


class FreshnessEngine:
    """
    Decides where a reading comes from: recent cache, the network, or cache as
    a fallback when the network fails.

    Never raises for source or cache failures; every path ends in a FetchOutcome.
    No locking: concurrent resolves each read the store independently and the
    store's last write wins.
    """

    def __init__(
        self,
        *,
        source: MetricSource,
        cache: CacheStore,
        stale_threshold: timedelta = STALE_THRESHOLD,
        fetch_timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.source = source
        self.cache = cache
        self.stale_threshold = stale_threshold
        self.fetch_timeout_s = fetch_timeout_s
        self.clock = clock

    def _read_cache(self) -> Optional[Reading]:
        try:
            return self.cache.get()
        except Exception as exc:
            log.warning("cache read failed, treating as miss: %s: %s", type(exc).__name__, exc)
            return None

    def _write_cache(self, reading: Reading) -> None:
        try:
            self.cache.put(reading)
        except Exception as exc:
            log.warning("cache write failed (reading still served): %s: %s", type(exc).__name__, exc)

    async def _fetch(self) -> Reading:
        end = self.clock()
        start = end - QUERY_WINDOW
        return await asyncio.wait_for(
            asyncio.to_thread(self.source.fetch, start, end),
            timeout=self.fetch_timeout_s,
        )

    async def resolve(self, force_refresh: bool = False) -> FetchOutcome:
        if not force_refresh:
            cached = self._read_cache()
            if cached is not None:
                age = self.clock() - cached.captured_at
                if age < self.stale_threshold:
                    log.debug("serving cached reading count=%d age=%s", cached.count, age)
                    return CachedFresh(cached)
                log.debug("cached reading too old (age=%s), fetching", age)

        kind: ErrorKind
        try:
            reading = await self._fetch()
        except MetricFetchError as exc:
            kind = exc.kind
            log.warning("fetch failed kind=%s: %s", kind, exc)
        except asyncio.TimeoutError:
            kind = "timeout"
            log.warning("fetch exceeded %.2fs", self.fetch_timeout_s)
        except Exception:
            kind = "unknown"
            log.exception("unexpected fetch failure")
        else:
            log.debug("fetched reading count=%d", reading.count)
            self._write_cache(reading)
            return Fresh(reading)

        # Re-read: another resolve may have written since the first look.
        fallback = self._read_cache()
        if fallback is not None:
            log.warning("falling back to cached reading count=%d", fallback.count)
            return CachedStale(fallback)

        return Failed(kind)
