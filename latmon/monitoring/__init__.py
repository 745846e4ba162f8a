"""Live latency monitoring.

Provides:
- Epoch counter and cancellation tokens
- Sliding window sample sink
- Height-walking latency poller
- Mode controller tying them together
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from latmon.monitoring.controller import ModeController
from latmon.monitoring.epoch import EpochCounter, EpochToken
from latmon.monitoring.poller import LatencyPoller
from latmon.monitoring.series import SeriesSink
from latmon.utils.backoff import RetryPolicy

if TYPE_CHECKING:
    from latmon.client import BlockDataClient
    from latmon.models import Config
    from latmon.utils.time import Clock

__all__ = [
    "EpochCounter",
    "EpochToken",
    "LatencyPoller",
    "ModeController",
    "SeriesSink",
    "create_monitor",
]


def create_monitor(
    config: Config,
    client: BlockDataClient,
    clock: Clock | None = None,
) -> ModeController:
    """Wire a sink, a poller and a controller from ``config``."""
    sink = SeriesSink(max_length=config.series.max_length)
    poller = LatencyPoller(
        client,
        retry_policy=RetryPolicy.from_config(config.poller.retry),
        max_iterations=config.poller.max_iterations,
        clock=clock,
    )
    return ModeController(poller, sink, initial_mode=config.dashboard.default_mode)
