"""Mode controller: owns the selected mode, the epoch and the poller task."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from typing import TYPE_CHECKING

from latmon.models import Mode, WidgetState
from latmon.monitoring.epoch import EpochCounter, EpochToken
from latmon.utils.logging_config import log_exception, set_correlation_id

if TYPE_CHECKING:
    from latmon.monitoring.poller import LatencyPoller
    from latmon.monitoring.series import SeriesSink

logger = logging.getLogger(__name__)


class ModeController:
    """Switches the monitored mode.

    Each :meth:`select` advances the epoch, clears the series and binds a
    fresh poller task to the new epoch. Older tasks notice their token went
    stale at their next check point and exit without touching the series.
    """

    def __init__(
        self,
        poller: LatencyPoller,
        sink: SeriesSink,
        initial_mode: Mode = Mode.FINAL,
    ) -> None:
        self.poller = poller
        self.sink = sink
        self.initial_mode = initial_mode
        self._epoch = EpochCounter()
        self._mode = initial_mode
        self._state = WidgetState.IDLE
        self._start_height: int | None = None
        self._task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._finished: deque[tuple[int, WidgetState]] = deque(maxlen=16)

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def epoch(self) -> int:
        return self._epoch.value

    @property
    def state(self) -> WidgetState:
        return self._state

    @property
    def finished_runs(self) -> list[tuple[int, WidgetState]]:
        """Recently ended runs as (epoch, final state), oldest first."""
        return list(self._finished)

    @property
    def start_height(self) -> int | None:
        """Height the current run resolved as the last block, once known."""
        return self._start_height

    def start(self) -> None:
        """Begin monitoring the initial mode."""
        self.select(self.initial_mode)

    def select(self, mode: Mode) -> None:
        """Switch to ``mode``; re-selecting the active mode also resets."""
        token = self._epoch.advance()
        self._mode = mode
        self._start_height = None
        self.sink.reset()
        self._set_state(WidgetState.RESOLVING, token)

        task = asyncio.get_running_loop().create_task(
            self._drive(mode, token),
            name=f"latmon-poller-{token.epoch}",
        )
        self._task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait(self) -> None:
        """Wait for the currently bound poller task to finish."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def aclose(self) -> None:
        """Invalidate all work and cancel outstanding poller tasks."""
        self._epoch.advance()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        self._state = WidgetState.IDLE

    async def _drive(self, mode: Mode, token: EpochToken) -> None:
        set_correlation_id(f"epoch-{token.epoch}")

        def on_resolved(height: int) -> None:
            if token.is_current():
                self._start_height = height
                self._set_state(WidgetState.STREAMING, token)

        try:
            async with contextlib.aclosing(
                self.poller.run(mode, token, on_resolved=on_resolved)
            ) as samples:
                async for sample in samples:
                    if token.is_stale:
                        break
                    self.sink.push(sample)
        except Exception as e:
            log_exception(logger, e, f"Poller for epoch {token.epoch} failed")
            raise

        if token.is_current():
            self._set_state(WidgetState.COMPLETE, token)
            self._finished.append((token.epoch, WidgetState.COMPLETE))
        else:
            logger.debug(
                "state transition: epoch %d -> %s", token.epoch, WidgetState.STALE.value
            )
            self._finished.append((token.epoch, WidgetState.STALE))

    def _set_state(self, state: WidgetState, token: EpochToken) -> None:
        if token.is_stale:
            return
        logger.debug(
            "state transition: epoch %d %s -> %s",
            token.epoch,
            self._state.value,
            state.value,
        )
        self._state = state
