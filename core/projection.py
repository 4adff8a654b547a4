from __future__ import annotations

from core.outcome import CachedFresh, CachedStale, FetchOutcome, Failed, Fresh
from core.state import ObservableState


def project(outcome: FetchOutcome, connected: bool, previous: ObservableState) -> ObservableState:
    """Map a resolve outcome to the next published state. Pure."""
    if isinstance(outcome, (Fresh, CachedFresh)):
        return ObservableState(
            is_loading=False,
            reading=outcome.reading,
            error_kind=None,
            is_connected=connected,
            is_stale=False,
        )

    if isinstance(outcome, CachedStale):
        return ObservableState(
            is_loading=False,
            reading=outcome.reading,
            error_kind=None,
            is_connected=connected,
            is_stale=True,
        )

    if isinstance(outcome, Failed):
        # Keep whatever was on screen; mark it stale if there was anything.
        return ObservableState(
            is_loading=False,
            reading=previous.reading,
            error_kind=outcome.error_kind,
            is_connected=connected,
            is_stale=previous.reading is not None,
        )

    raise TypeError(f"unknown outcome {outcome!r}")
