from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from metrics.base import ErrorKind, Reading

log = logging.getLogger("scanmonitor.state")

Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class ObservableState:
    is_loading: bool = False
    reading: Optional[Reading] = None
    error_kind: Optional[ErrorKind] = None
    is_connected: bool = True
    is_stale: bool = False


class StateStore:
    """
    Holds the current ObservableState and fans snapshots out to subscribers.

    Snapshots are immutable, so readers never see a half-applied update.
    A new subscriber is called with the current snapshot right away.
    """

    def __init__(self, initial: ObservableState) -> None:
        self._value = initial
        self._subscribers: list[Callable[[ObservableState], None]] = []

    @property
    def value(self) -> ObservableState:
        return self._value

    def subscribe(self, callback: Callable[[ObservableState], None]) -> Unsubscribe:
        self._subscribers.append(callback)
        self._notify_one(callback, self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set(self, state: ObservableState) -> None:
        if state == self._value:
            return
        self._value = state
        for callback in list(self._subscribers):
            self._notify_one(callback, state)

    def update(self, **changes: Any) -> ObservableState:
        self.set(replace(self._value, **changes))
        return self._value

    @staticmethod
    def _notify_one(callback: Callable[[ObservableState], None], state: ObservableState) -> None:
        try:
            callback(state)
        except Exception:
            log.exception("state subscriber failed")
