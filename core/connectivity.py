from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Literal, Optional

log = logging.getLogger("scanmonitor.connectivity")

ConnectionKind = Literal["none", "wifi", "cellular", "other"]


@dataclass(frozen=True)
class ConnectivityStatus:
    connected: bool
    kind: ConnectionKind = "other"


OFFLINE = ConnectivityStatus(connected=False, kind="none")
ONLINE = ConnectivityStatus(connected=True, kind="other")


class ConnectivityMonitor:
    """
    In-memory connectivity publisher.

    Every publish() reaches subscribers, changed or not; deciding what counts
    as a transition is the subscriber's business.
    """

    def __init__(self, initial: ConnectivityStatus = ONLINE) -> None:
        self._status = initial
        self._subscribers: list[Callable[[ConnectivityStatus], None]] = []

    @property
    def status(self) -> ConnectivityStatus:
        return self._status

    def subscribe(self, callback: Callable[[ConnectivityStatus], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, status: ConnectivityStatus) -> None:
        log.debug("connectivity status: %s", status)
        self._status = status
        for callback in list(self._subscribers):
            try:
                callback(status)
            except Exception:
                log.exception("connectivity subscriber failed")


class ProbeConnectivityMonitor(ConnectivityMonitor):
    """
    Polls a TCP endpoint and publishes when reachability changes.

    A server host can't tell wifi from cellular, so a successful probe is
    reported as kind "other".
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 443,
        interval_s: float = 10.0,
        timeout_s: float = 3.0,
        initial: ConnectivityStatus = ONLINE,
    ) -> None:
        super().__init__(initial)
        self.host = host
        self.port = port
        self.interval_s = interval_s
        self.timeout_s = timeout_s
        self._task: Optional[asyncio.Task] = None

    async def probe(self) -> ConnectivityStatus:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout_s,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            log.debug("probe %s:%d failed: %s", self.host, self.port, exc)
            return OFFLINE

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as exc:
            log.debug("probe close failed: %s", exc)
        return ONLINE

    async def _run(self) -> None:
        while True:
            try:
                status = await self.probe()
            except Exception:
                log.exception("probe %s:%d raised, keeping last status", self.host, self.port)
            else:
                if status != self.status:
                    log.info("connectivity changed: connected=%s", status.connected)
                    self.publish(status)
            await asyncio.sleep(self.interval_s)

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
