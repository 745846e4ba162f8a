"""Tests for the latency poller."""

from __future__ import annotations

import asyncio

import pytest

from latmon.models import Mode
from latmon.monitoring.epoch import EpochCounter
from latmon.monitoring.poller import LatencyPoller
from latmon.utils.backoff import RetryPolicy
from latmon.utils.exceptions import ApiError, MalformedResponseError, NetworkError
from tests.conftest import (
    BLOCK_TIMESTAMP_NANOS,
    FakeBlockClient,
    FakeClock,
    make_header,
    settle,
)

pytestmark = [pytest.mark.unit, pytest.mark.monitoring]


async def _collect(poller, mode, token, **kwargs):
    return [s async for s in poller.run(mode, token, **kwargs)]


class TestLatencyPoller:
    """Test LatencyPoller.run."""

    @pytest.mark.asyncio
    async def test_walks_heights_after_last_block(self, fake_client, fake_clock):
        """Last block 1000 with five iterations samples 1001..1005."""
        poller = LatencyPoller(fake_client, max_iterations=5, clock=fake_clock)
        token = EpochCounter().advance()

        samples = await _collect(poller, Mode.FINAL, token)

        assert [s.block_height for s in samples] == [1001, 1002, 1003, 1004, 1005]
        assert all(s.latency_seconds == pytest.approx(2.0) for s in samples)
        assert fake_client.heights_requested(Mode.FINAL) == [1001, 1002, 1003, 1004, 1005]

    @pytest.mark.asyncio
    async def test_default_iteration_cap(self, fake_client, fake_clock):
        poller = LatencyPoller(fake_client, clock=fake_clock)
        token = EpochCounter().advance()

        samples = await _collect(poller, Mode.FINAL, token)

        assert len(samples) == 300
        assert samples[-1].block_height == 1300

    @pytest.mark.asyncio
    async def test_optimistic_mode(self, fake_client, fake_clock):
        poller = LatencyPoller(fake_client, max_iterations=2, clock=fake_clock)
        token = EpochCounter().advance()

        samples = await _collect(poller, Mode.OPTIMISTIC, token)

        assert [s.block_height for s in samples] == [2001, 2002]
        assert fake_client.heights_requested(Mode.FINAL) == []

    @pytest.mark.asyncio
    async def test_on_resolved_reports_start_height(self, fake_client, fake_clock):
        resolved = []
        poller = LatencyPoller(fake_client, max_iterations=1, clock=fake_clock)

        await _collect(
            poller, Mode.FINAL, EpochCounter().advance(), on_resolved=resolved.append
        )

        assert resolved == [1000]

    @pytest.mark.asyncio
    async def test_null_block_is_skipped(self, fake_clock):
        """A missing block adds nothing and the next height is still requested."""
        client = FakeBlockClient(script={(Mode.FINAL, 1002): [None]})
        poller = LatencyPoller(client, max_iterations=3, clock=fake_clock)

        samples = await _collect(poller, Mode.FINAL, EpochCounter().advance())

        assert [s.block_height for s in samples] == [1001, 1003]
        assert client.heights_requested(Mode.FINAL) == [1001, 1002, 1003]
        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_header_without_timestamp_is_skipped(self, fake_clock):
        client = FakeBlockClient(
            script={(Mode.FINAL, 1001): [{"height": 1001}]},
        )
        poller = LatencyPoller(client, max_iterations=2, clock=fake_clock)

        samples = await _collect(poller, Mode.FINAL, EpochCounter().advance())

        assert [s.block_height for s in samples] == [1002]

    @pytest.mark.asyncio
    async def test_transient_errors_retry_every_half_second(self, fake_clock):
        client = FakeBlockClient(
            script={
                (Mode.FINAL, 1001): [
                    NetworkError("connection reset"),
                    ApiError("HTTP 500", 500),
                    MalformedResponseError("not JSON"),
                    asyncio.TimeoutError(),
                    make_header(1001),
                ]
            }
        )
        poller = LatencyPoller(client, max_iterations=1, clock=fake_clock)

        samples = await _collect(poller, Mode.FINAL, EpochCounter().advance())

        assert [s.block_height for s in samples] == [1001]
        assert fake_clock.sleeps == [0.5, 0.5, 0.5, 0.5]
        assert client.heights_requested(Mode.FINAL) == [1001] * 5

    @pytest.mark.asyncio
    async def test_start_height_resolution_is_retried(self, fake_clock):
        client = FakeBlockClient(
            last={Mode.FINAL: [NetworkError("down"), MalformedResponseError("no header"), 1000]}
        )
        poller = LatencyPoller(client, max_iterations=1, clock=fake_clock)

        samples = await _collect(poller, Mode.FINAL, EpochCounter().advance())

        assert [s.block_height for s in samples] == [1001]
        assert fake_clock.sleeps == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_exponential_policy(self, fake_clock):
        client = FakeBlockClient(
            script={(Mode.FINAL, 1001): [NetworkError("x")] * 4},
        )
        policy = RetryPolicy(base_delay=0.5, multiplier=2.0, max_delay=2.0)
        poller = LatencyPoller(client, retry_policy=policy, max_iterations=1, clock=fake_clock)

        await _collect(poller, Mode.FINAL, EpochCounter().advance())

        assert fake_clock.sleeps == [0.5, 1.0, 2.0, 2.0]

    @pytest.mark.asyncio
    async def test_attempt_cap_skips_height(self, fake_clock):
        client = FakeBlockClient(
            script={(Mode.FINAL, 1001): [NetworkError("x")] * 3},
        )
        policy = RetryPolicy(max_attempts=2)
        poller = LatencyPoller(client, retry_policy=policy, max_iterations=2, clock=fake_clock)

        samples = await _collect(poller, Mode.FINAL, EpochCounter().advance())

        assert [s.block_height for s in samples] == [1002]
        assert fake_clock.sleeps == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_attempt_cap_ends_run_without_start_height(self, fake_clock):
        client = FakeBlockClient(last={Mode.FINAL: [NetworkError("down")]})
        resolved = []
        policy = RetryPolicy(max_attempts=1)
        poller = LatencyPoller(client, retry_policy=policy, clock=fake_clock)

        samples = await _collect(
            poller, Mode.FINAL, EpochCounter().advance(), on_resolved=resolved.append
        )

        assert samples == []
        assert resolved == []
        assert client.heights_requested(Mode.FINAL) == []

    @pytest.mark.asyncio
    async def test_negative_latency_is_reported(self):
        """Block timestamps ahead of the local clock give negative latency."""
        clock = FakeClock(now=BLOCK_TIMESTAMP_NANOS / 1e9 - 0.5)
        client = FakeBlockClient()
        poller = LatencyPoller(client, max_iterations=1, clock=clock)

        samples = await _collect(poller, Mode.FINAL, EpochCounter().advance())

        assert samples[0].latency_seconds == pytest.approx(-0.5)

    @pytest.mark.asyncio
    async def test_stale_token_yields_nothing(self, fake_client, fake_clock):
        counter = EpochCounter()
        token = counter.advance()
        counter.advance()
        poller = LatencyPoller(fake_client, clock=fake_clock)

        samples = await _collect(poller, Mode.FINAL, token)

        assert samples == []
        assert fake_client.requests == []

    @pytest.mark.asyncio
    async def test_stale_during_retry_sleep_stops(self):
        clock = FakeClock(gated=True)
        client = FakeBlockClient(
            script={(Mode.FINAL, 1001): [NetworkError("x"), make_header(1001)]},
        )
        counter = EpochCounter()
        poller = LatencyPoller(client, clock=clock)
        task = asyncio.create_task(_collect(poller, Mode.FINAL, counter.advance()))

        await asyncio.wait_for(clock.sleeping.wait(), timeout=1.0)
        counter.advance()
        clock.release()
        samples = await asyncio.wait_for(task, timeout=1.0)

        assert samples == []
        assert client.heights_requested(Mode.FINAL) == [1001]

    @pytest.mark.asyncio
    async def test_response_arriving_after_stale_is_dropped(self, fake_clock):
        gate = asyncio.Event()
        client = FakeBlockClient(gates={(Mode.FINAL, 1002): gate})
        counter = EpochCounter()
        poller = LatencyPoller(client, clock=fake_clock)
        task = asyncio.create_task(_collect(poller, Mode.FINAL, counter.advance()))

        await settle()
        assert client.heights_requested(Mode.FINAL) == [1001, 1002]
        counter.advance()
        gate.set()
        samples = await asyncio.wait_for(task, timeout=1.0)

        assert [s.block_height for s in samples] == [1001]
        assert client.heights_requested(Mode.FINAL) == [1001, 1002]
