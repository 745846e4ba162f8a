"""Async HTTP client for the block data API.

Wraps the read-only JSON endpoints the monitor consumes:

- ``/v0/last_block/{final|optimistic}/headers`` (redirects to the block)
- ``/v0/{block|block_opt}/{height}/headers``
- ``/v0/first_block``
- ``/health``
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from latmon.models import Mode
from latmon.utils.exceptions import ApiError, MalformedResponseError, NetworkError

logger = logging.getLogger(__name__)


def extract_header(payload: Any) -> dict[str, Any] | None:
    """Return the ``header`` object of a block headers payload, if any."""
    if not isinstance(payload, dict):
        return None
    header = payload.get("header")
    if not isinstance(header, dict):
        return None
    return header


def header_height(header: dict[str, Any]) -> int | None:
    """Return the header's block height, or None when absent or not an integer."""
    height = header.get("height")
    if isinstance(height, bool) or not isinstance(height, int):
        return None
    return height


def header_timestamp_nanos(header: dict[str, Any]) -> int | None:
    """Return ``timestamp_nanosec`` as an int.

    The API serializes the timestamp as a decimal string; plain integers are
    accepted too. Anything else yields None.
    """
    raw = header.get("timestamp_nanosec")
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw)
        except ValueError:
            return None
    return None


class BlockDataClient:
    """Client for the block data API."""

    def __init__(self, root_url: str, timeout: float = 10.0):
        """Initialize the client.

        Args:
            root_url: API root, e.g. ``https://mainnet.neardata.xyz``
            timeout: Total timeout of a single request in seconds

        """
        self.root_url = root_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: aiohttp.ClientSession | None = None

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> BlockDataClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def url(self, path: str) -> str:
        """Absolute URL for an API path."""
        return f"{self.root_url}{path}"

    async def get_json(self, path: str) -> Any:
        """GET ``path`` and decode the JSON body.

        Raises:
            NetworkError: transport failure or timeout
            ApiError: non-2xx status
            MalformedResponseError: body is not JSON

        """
        if self.session is None:
            await self.start()
        assert self.session is not None

        url = self.url(path)
        try:
            async with self.session.get(url) as response:
                if response.status >= 400:
                    msg = f"GET {path} returned HTTP {response.status}"
                    raise ApiError(msg, response.status, {"url": url})
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    msg = f"GET {path} returned a body that is not JSON"
                    raise MalformedResponseError(msg, {"url": url}) from e
        except aiohttp.ClientError as e:
            msg = f"GET {path} failed: {e}"
            raise NetworkError(msg, {"url": url}) from e
        except asyncio.TimeoutError as e:
            msg = f"GET {path} timed out"
            raise NetworkError(msg, {"url": url}) from e

    async def last_block_header(self, mode: Mode) -> dict[str, Any]:
        """Header of the most recent block for ``mode``.

        Raises:
            MalformedResponseError: the response has no header with an integer height

        """
        payload = await self.get_json(f"/v0/last_block/{mode.value}/headers")
        header = extract_header(payload)
        if header is None or header_height(header) is None:
            msg = f"Last {mode.value} block response has no usable header"
            raise MalformedResponseError(msg)
        return header

    async def last_block_height(self, mode: Mode) -> int:
        """Height of the most recent block for ``mode``."""
        header = await self.last_block_header(mode)
        height = header_height(header)
        assert height is not None
        return height

    async def block_header(self, height: int, mode: Mode) -> dict[str, Any] | None:
        """Header of the block at ``height``; None when the API has no block there."""
        payload = await self.get_json(f"/v0/{mode.block_segment}/{height}/headers")
        return extract_header(payload)

    async def first_block_height(self) -> int:
        """Height of the first block served by the API."""
        payload = await self.get_json("/v0/first_block")
        block = payload.get("block") if isinstance(payload, dict) else None
        header = extract_header(block)
        height = header_height(header) if header is not None else None
        if height is None:
            msg = "First block response has no usable header"
            raise MalformedResponseError(msg)
        return height

    async def health(self) -> str:
        """Server health status, ``"ok"`` or ``"unhealthy"``."""
        payload = await self.get_json("/health")
        status = payload.get("status") if isinstance(payload, dict) else None
        if not isinstance(status, str):
            msg = "Health response has no status"
            raise MalformedResponseError(msg)
        return status
