# tests/conftest.py
"""Shared fakes and fixtures.

Sources, caches and engines here are in-memory stand-ins; nothing touches
the network except the connectivity probe tests, which stay on localhost.
"""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from core.outcome import FetchOutcome
from metrics.base import MetricFetchError, Reading

T0 = datetime(2026, 1, 25, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeSource:
    def __init__(
        self,
        reading: Optional[Reading] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        self.reading = reading
        self.error = error
        self.calls: list[tuple[datetime, datetime]] = []
        self.before_raise = None

    def fetch(self, start: datetime, end: datetime) -> Reading:
        self.calls.append((start, end))
        if self.error is not None:
            if self.before_raise is not None:
                self.before_raise()
            raise self.error
        assert self.reading is not None
        return self.reading


class BlockingSource:
    """fetch() parks until release() so timeouts can be exercised."""

    def __init__(self) -> None:
        self.released = threading.Event()

    def fetch(self, start: datetime, end: datetime) -> Reading:
        self.released.wait(timeout=5)
        return Reading(count=1, captured_at=end)

    def release(self) -> None:
        self.released.set()


class MemoryCache:
    def __init__(self, reading: Optional[Reading] = None) -> None:
        self.reading = reading
        self.get_error: Optional[Exception] = None
        self.put_error: Optional[Exception] = None
        self.gets = 0
        self.puts: list[Reading] = []

    def get(self) -> Optional[Reading]:
        self.gets += 1
        if self.get_error is not None:
            raise self.get_error
        return self.reading

    def put(self, reading: Reading) -> None:
        if self.put_error is not None:
            raise self.put_error
        self.puts.append(reading)
        self.reading = reading

    def clear(self) -> None:
        self.reading = None

    def is_available(self) -> bool:
        return self.reading is not None


class ScriptedEngine:
    """Returns queued outcomes in order; the last one repeats."""

    def __init__(self, *outcomes: FetchOutcome) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[bool] = []
        self.gates: dict[int, asyncio.Event] = {}

    def gate(self, call_index: int) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[call_index] = event
        return event

    async def resolve(self, force_refresh: bool = False) -> FetchOutcome:
        index = len(self.calls)
        self.calls.append(force_refresh)
        outcome = self.outcomes[min(index, len(self.outcomes) - 1)]
        gate = self.gates.get(index)
        if gate is not None:
            await gate.wait()
        return outcome


def unreachable() -> MetricFetchError:
    return MetricFetchError("network-unreachable", "connection refused")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fresh_reading() -> Reading:
    return Reading(count=945, captured_at=T0)


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()
