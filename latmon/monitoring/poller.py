"""Latency poller.

Resolves the latest block height for a mode, then walks forward one height
at a time, turning each block header's production timestamp into a latency
sample. Work is bound to an :class:`~latmon.monitoring.epoch.EpochToken`;
the token is re-checked at every suspension point and the run ends as soon
as it goes stale.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, TypeVar

from latmon.client import header_timestamp_nanos
from latmon.models import Mode, Sample
from latmon.utils.backoff import RetryPolicy
from latmon.utils.exceptions import TRANSIENT_ERRORS, RetriesExhaustedError
from latmon.utils.time import Clock, nanos_to_seconds

if TYPE_CHECKING:
    from latmon.client import BlockDataClient
    from latmon.monitoring.epoch import EpochToken

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ITERATIONS = 300


class _Stale(Exception):
    """Raised internally when the epoch token goes stale mid-request."""


class LatencyPoller:
    """Produces latency samples for one mode per run."""

    def __init__(
        self,
        client: BlockDataClient,
        retry_policy: RetryPolicy | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        clock: Clock | None = None,
    ) -> None:
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_iterations = max_iterations
        self.clock = clock or Clock()

    async def run(
        self,
        mode: Mode,
        token: EpochToken,
        on_resolved: Callable[[int], None] | None = None,
    ) -> AsyncIterator[Sample]:
        """Yield samples for ``mode`` while ``token`` is current.

        Args:
            mode: Finality to monitor
            token: Epoch the run belongs to
            on_resolved: Called with the starting height once it is known

        """
        try:
            start_height = await self._fetch(
                lambda: self.client.last_block_height(mode),
                token,
                f"last {mode.value} block",
            )
        except _Stale:
            logger.debug("Epoch %d went stale while resolving start height", token.epoch)
            return
        except RetriesExhaustedError as e:
            logger.error("Giving up resolving the last %s block: %s", mode.value, e)
            return

        if token.is_stale:
            return
        logger.info(
            "Polling %s blocks from height %d (epoch %d)",
            mode.value,
            start_height + 1,
            token.epoch,
        )
        if on_resolved is not None:
            on_resolved(start_height)

        for i in range(1, self.max_iterations + 1):
            height = start_height + i
            try:
                header = await self._fetch(
                    lambda h=height: self.client.block_header(h, mode),
                    token,
                    f"height {height}",
                )
            except _Stale:
                logger.debug("Epoch %d went stale at height %d", token.epoch, height)
                return
            except RetriesExhaustedError as e:
                logger.warning("Skipping height %d: %s", height, e)
                continue

            if token.is_stale:
                logger.debug("Dropping height %d for stale epoch %d", height, token.epoch)
                return

            sample = self._to_sample(height, header)
            if sample is None:
                logger.debug("No usable header at height %d", height)
                continue
            yield sample

        logger.info(
            "Poller for epoch %d finished after %d heights",
            token.epoch,
            self.max_iterations,
        )

    def _to_sample(self, height: int, header: dict[str, Any] | None) -> Sample | None:
        if header is None:
            return None
        nanos = header_timestamp_nanos(header)
        if nanos is None:
            return None
        # Clock skew can make this negative; reported as observed.
        latency = self.clock.now() - nanos_to_seconds(nanos)
        return Sample(block_height=height, latency_seconds=latency)

    async def _fetch(
        self,
        request: Callable[[], Awaitable[T]],
        token: EpochToken,
        what: str,
    ) -> T:
        """Run ``request`` under the retry policy while ``token`` is current.

        Raises:
            _Stale: the token went stale before a result could be accepted
            RetriesExhaustedError: the policy's attempt cap was reached

        """
        retries = 0
        while True:
            if token.is_stale:
                raise _Stale
            try:
                return await request()
            except TRANSIENT_ERRORS as e:
                if token.is_stale:
                    raise _Stale from e
                if not self.retry_policy.should_retry(retries):
                    msg = f"{what}: gave up after {retries + 1} attempts"
                    raise RetriesExhaustedError(msg, {"last_error": str(e)}) from e
                delay = self.retry_policy.next_delay(retries)
                logger.debug("Fetching %s failed (%s), retrying in %.2fs", what, e, delay)
                retries += 1
                await self.clock.sleep(delay)
