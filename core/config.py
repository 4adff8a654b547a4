from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from metrics.datadog import DEFAULT_QUERY


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    datadog_base_url: str = "https://api.datadoghq.com"
    datadog_api_key: str = ""
    datadog_app_key: str = ""
    query: str = DEFAULT_QUERY
    cache_path: Path = Path("data/reading.json")
    fetch_timeout_s: float = 15.0
    refresh_interval_s: float = 300.0
    stale_after_s: float = 600.0
    probe_host: str = "api.datadoghq.com"
    probe_port: int = 443
    probe_interval_s: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        base_url = os.getenv("DATADOG_BASE_URL", cls.datadog_base_url).rstrip("/")
        # Probe the API host itself unless told otherwise.
        default_probe_host = urlparse(base_url).hostname or cls.probe_host

        return cls(
            datadog_base_url=base_url,
            datadog_api_key=os.getenv("DATADOG_API_KEY", ""),
            datadog_app_key=os.getenv("DATADOG_APP_KEY", ""),
            query=os.getenv("SCANMONITOR_QUERY", DEFAULT_QUERY),
            cache_path=Path(os.getenv("SCANMONITOR_CACHE_PATH", str(cls.cache_path))),
            fetch_timeout_s=_env_float("SCANMONITOR_FETCH_TIMEOUT_S", cls.fetch_timeout_s),
            refresh_interval_s=_env_float("SCANMONITOR_REFRESH_INTERVAL_S", cls.refresh_interval_s),
            stale_after_s=_env_float("SCANMONITOR_STALE_AFTER_S", cls.stale_after_s),
            probe_host=os.getenv("SCANMONITOR_PROBE_HOST", default_probe_host),
            probe_port=int(_env_float("SCANMONITOR_PROBE_PORT", cls.probe_port)),
            probe_interval_s=_env_float("SCANMONITOR_PROBE_INTERVAL_S", cls.probe_interval_s),
            log_level=os.getenv("SCANMONITOR_LOG_LEVEL", cls.log_level).upper(),
        )
