# tests/unit/core/test_projection.py
"""Tests for core/projection.py: outcome to ObservableState mapping."""

from __future__ import annotations

import pytest

from conftest import T0
from core.outcome import CachedFresh, CachedStale, Failed, Fresh
from core.projection import project
from core.state import ObservableState
from metrics.base import Reading

READING = Reading(count=945, captured_at=T0)
EARLIER = Reading(count=12, captured_at=T0)


class TestProject:

    @pytest.mark.parametrize("connected", [True, False])
    def test_fresh(self, connected):
        state = project(Fresh(READING), connected, ObservableState(is_loading=True))
        assert state == ObservableState(
            is_loading=False, reading=READING, error_kind=None, is_connected=connected, is_stale=False
        )

    @pytest.mark.parametrize("connected", [True, False])
    def test_cached_fresh_is_never_stale(self, connected):
        state = project(CachedFresh(READING), connected, ObservableState(is_loading=True))
        assert state.is_stale is False
        assert state.is_connected is connected

    def test_cached_stale(self):
        state = project(CachedStale(READING), False, ObservableState(is_loading=True))
        assert state == ObservableState(
            is_loading=False, reading=READING, error_kind=None, is_connected=False, is_stale=True
        )

    def test_stale_fallback_clears_previous_error(self):
        previous = ObservableState(is_loading=True, error_kind="timeout")
        assert project(CachedStale(READING), True, previous).error_kind is None

    def test_failed_without_previous_reading(self):
        state = project(Failed("timeout"), True, ObservableState(is_loading=True))
        assert state == ObservableState(
            is_loading=False, reading=None, error_kind="timeout", is_connected=True, is_stale=False
        )

    def test_failed_keeps_previous_reading_and_marks_stale(self):
        previous = ObservableState(is_loading=True, reading=EARLIER)
        state = project(Failed("server-error"), True, previous)
        assert state.reading == EARLIER
        assert state.error_kind == "server-error"
        assert state.is_stale is True
        assert state.is_loading is False

    def test_unknown_outcome_rejected(self):
        with pytest.raises(TypeError):
            project(object(), True, ObservableState())  # type: ignore[arg-type]
