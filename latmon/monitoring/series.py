"""Sliding window of latency samples driving the chart redraw."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable

from latmon.models import Sample, SeriesStats

logger = logging.getLogger(__name__)

RedrawListener = Callable[[tuple[Sample, ...]], None]

DEFAULT_MAX_LENGTH = 30


class SeriesSink:
    """Bounded FIFO of samples.

    Every mutation notifies the redraw listeners with the full window,
    oldest sample first (x = block height, y = latency).
    """

    def __init__(
        self,
        max_length: int = DEFAULT_MAX_LENGTH,
        listeners: list[RedrawListener] | None = None,
    ) -> None:
        if max_length < 1:
            msg = f"max_length must be positive, got {max_length}"
            raise ValueError(msg)
        self.max_length = max_length
        self._samples: deque[Sample] = deque(maxlen=max_length)
        self._listeners: list[RedrawListener] = list(listeners or [])

    def __len__(self) -> int:
        return len(self._samples)

    def add_listener(self, listener: RedrawListener) -> None:
        """Register a redraw callback."""
        self._listeners.append(listener)

    def remove_listener(self, listener: RedrawListener) -> None:
        """Unregister a redraw callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def push(self, sample: Sample) -> None:
        """Append ``sample``, dropping the oldest one past the cap, and redraw."""
        self._samples.append(sample)
        self._redraw()

    def reset(self) -> None:
        """Empty the window and redraw."""
        self._samples.clear()
        self._redraw()

    def snapshot(self) -> tuple[Sample, ...]:
        """Current samples, oldest first."""
        return tuple(self._samples)

    def stats(self) -> SeriesStats:
        """Latency summary over the current window."""
        return SeriesStats.from_samples(self.snapshot())

    def _redraw(self) -> None:
        view = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("Redraw listener %r failed", listener)
