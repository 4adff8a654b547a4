# core/cache.py
from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from metrics.base import Reading, now_utc

log = logging.getLogger("scanmonitor.cache")


class CacheError(Exception):
    """Cache could not be read or written."""


class CacheStore(Protocol):
    def get(self) -> Optional[Reading]: ...

    def put(self, reading: Reading) -> None: ...

    def clear(self) -> None: ...


def _serialize_reading(reading: Reading, written_at: datetime) -> dict:
    return {
        "count": reading.count,
        "captured_at": reading.captured_at.isoformat(),
        "written_at": written_at.isoformat(),
    }

def _deserialize_reading(data: dict) -> Reading:
    return Reading(
        count=int(data["count"]),
        captured_at=datetime.fromisoformat(data["captured_at"]),
    )

class ReadingCache:
    """
    Single-slot JSON file holding the last good reading.

    The file is re-read on every get() so a concurrent writer's value is always
    what callers see. Writes go through a temp file and os.replace.
    """

    def __init__(self, path: Path):
        self.path = path

    def _load(self) -> Optional[dict]:
        if not self.path.exists():
            return None

        try:
            raw = json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            raise CacheError(f"unreadable cache {self.path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise CacheError(f"unexpected cache payload in {self.path}")
        return raw

    def get(self) -> Optional[Reading]:
        raw = self._load()
        if raw is None:
            return None

        try:
            reading = _deserialize_reading(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise CacheError(f"corrupt cache {self.path}: {exc}") from exc

        log.debug("cache hit count=%d captured_at=%s", reading.count, reading.captured_at.isoformat())
        return reading

    def put(self, reading: Reading) -> None:
        payload = _serialize_reading(reading, now_utc())
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=2))
            os.replace(tmp, self.path)
        except OSError as exc:
            raise CacheError(f"cannot write cache {self.path}: {exc}") from exc

        log.debug("cached reading count=%d", reading.count)

    def clear(self) -> None:
        log.info("clearing reading cache %s", self.path)
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise CacheError(f"cannot clear cache {self.path}: {exc}") from exc

    def last_write_time(self) -> Optional[datetime]:
        try:
            raw = self._load()
        except CacheError:
            return None
        if raw is None or "written_at" not in raw:
            return None
        try:
            return datetime.fromisoformat(raw["written_at"])
        except (TypeError, ValueError):
            return None

    def is_available(self) -> bool:
        return self.path.exists()
