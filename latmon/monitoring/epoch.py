"""Epoch counter and the tokens that bind work to an epoch."""

from __future__ import annotations

from dataclasses import dataclass


class EpochCounter:
    """Monotonically increasing epoch.

    Exactly one value is current. Work started under an older value holds a
    stale :class:`EpochToken` and must not mutate shared state.
    """

    def __init__(self, start: int = 0) -> None:
        self._value = start

    @property
    def value(self) -> int:
        return self._value

    def advance(self) -> EpochToken:
        """Make a new epoch current and return its token."""
        self._value += 1
        return EpochToken(self, self._value)

    def token(self) -> EpochToken:
        """Token for the current epoch."""
        return EpochToken(self, self._value)


@dataclass(frozen=True)
class EpochToken:
    """Cooperative cancellation token: current while its epoch is."""

    counter: EpochCounter
    epoch: int

    def is_current(self) -> bool:
        return self.counter.value == self.epoch

    @property
    def is_stale(self) -> bool:
        return not self.is_current()
