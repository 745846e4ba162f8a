"""Tests for epoch counter and tokens."""

from __future__ import annotations

import pytest

from latmon.monitoring.epoch import EpochCounter

pytestmark = [pytest.mark.unit, pytest.mark.monitoring]


class TestEpochCounter:
    """Test EpochCounter and EpochToken."""

    def test_starts_at_zero(self):
        assert EpochCounter().value == 0

    def test_advance_strictly_increases(self):
        counter = EpochCounter()
        epochs = [counter.advance().epoch for _ in range(5)]
        assert epochs == [1, 2, 3, 4, 5]
        assert counter.value == 5

    def test_only_latest_token_is_current(self):
        counter = EpochCounter()
        first = counter.advance()
        second = counter.advance()

        assert first.is_stale
        assert not first.is_current()
        assert second.is_current()
        assert not second.is_stale

    def test_token_for_current_epoch(self):
        counter = EpochCounter(start=7)
        token = counter.token()
        assert token.epoch == 7
        assert token.is_current()
        counter.advance()
        assert token.is_stale
