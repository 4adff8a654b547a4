from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from core.connectivity import ConnectivityMonitor, ConnectivityStatus
from core.freshness import FreshnessEngine
from core.outcome import FetchOutcome, Failed
from core.projection import project
from core.state import ObservableState, StateStore, Unsubscribe

log = logging.getLogger("scanmonitor.coordinator")

AUTO_REFRESH_INTERVAL_S = 5 * 60.0


class CancelToken:
    """Session handle returned by start(). Cancelled once, never reset."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class StateCoordinator:
    """
    Owns the observable state for one session.

    Initial load, manual refresh, timer ticks and reconnect retries all go
    through here. Results land last-write-wins; anything finishing after
    stop() is dropped.
    """

    def __init__(
        self,
        *,
        engine: FreshnessEngine,
        monitor: ConnectivityMonitor,
        refresh_interval_s: float = AUTO_REFRESH_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.engine = engine
        self.monitor = monitor
        self.refresh_interval_s = refresh_interval_s
        self._clock = clock
        self._sleep = sleep
        self.store = StateStore(ObservableState(is_loading=True))
        self._token: Optional[CancelToken] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._tasks: set[asyncio.Task] = set()
        self._stopped = False

    @property
    def state(self) -> ObservableState:
        return self.store.value

    @property
    def running(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def subscribe(self, callback: Callable[[ObservableState], None]) -> Unsubscribe:
        return self.store.subscribe(callback)

    # ------------------------------------------------------------------
    # lifecycle

    def start(self) -> CancelToken:
        """Begin the session. Must be called from a running event loop."""
        if self._token is not None:
            raise RuntimeError("coordinator already started")

        token = CancelToken()
        self._token = token

        status = self.monitor.status
        self.store.update(is_loading=True, is_connected=status.connected)
        log.info("starting session connected=%s interval=%.0fs", status.connected, self.refresh_interval_s)

        self._spawn(self._initial_load(token))
        self._unsubscribe = self.monitor.subscribe(self._on_connectivity)
        self._timer_task = asyncio.create_task(self._auto_refresh(token))
        return token

    def stop(self) -> None:
        # The token may already have been cancelled by the caller.
        token = self._token
        if token is None or self._stopped:
            return

        self._stopped = True
        token.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        log.info("session stopped (%d refresh task(s) still in flight)", len(self._tasks))

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # data

    async def refresh(self) -> ObservableState:
        token = self._token
        if token is not None and token.cancelled:
            log.debug("refresh ignored, session stopped")
            return self.store.value

        self.store.update(is_loading=True)
        outcome = await self._resolve(force_refresh=True)
        self._publish(outcome, token)
        return self.store.value

    async def _initial_load(self, token: CancelToken) -> None:
        outcome = await self._resolve(force_refresh=False)
        self._publish(outcome, token)

    async def _resolve(self, *, force_refresh: bool) -> FetchOutcome:
        try:
            return await self.engine.resolve(force_refresh=force_refresh)
        except Exception:
            log.exception("resolve raised (force_refresh=%s)", force_refresh)
            return Failed("unknown")

    def _publish(self, outcome: FetchOutcome, token: Optional[CancelToken]) -> None:
        if token is not None and token.cancelled:
            log.debug("discarding %s, session stopped", type(outcome).__name__)
            return

        previous = self.store.value
        self.store.set(project(outcome, previous.is_connected, previous))
        log.debug("published %s", type(outcome).__name__)

    # ------------------------------------------------------------------
    # triggers

    async def _auto_refresh(self, token: CancelToken) -> None:
        # Ticks are anchored to nominal times so slow sleeps don't accumulate.
        # Slots missed during a stall are skipped, never replayed.
        interval = self.refresh_interval_s
        next_tick = self._clock() + interval
        while not token.cancelled:
            await self._sleep(max(0.0, next_tick - self._clock()))
            if token.cancelled:
                return
            log.debug("auto-refresh tick")
            self._spawn(self.refresh())

            next_tick += interval
            now = self._clock()
            if next_tick <= now:
                missed = int((now - next_tick) // interval) + 1
                log.info("auto-refresh fell behind, skipping %d tick(s)", missed)
                next_tick += missed * interval

    def _on_connectivity(self, status: ConnectivityStatus) -> None:
        if not self.running:
            return

        was_connected = self.store.value.is_connected
        current = self.store.update(is_connected=status.connected)

        if status.connected and not was_connected and current.error_kind is not None:
            log.info("connection restored with error showing, refreshing")
            self._spawn(self.refresh())

    def _spawn(self, coro: Awaitable[object]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
