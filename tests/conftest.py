"""Pytest configuration and shared fixtures for latmon tests."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

import pytest

from latmon.models import Mode

# 2023-11-14T22:13:20Z in nanoseconds, and a wall clock two seconds later.
BLOCK_TIMESTAMP_NANOS = 1_700_000_000_000_000_000
NOW = 1_700_000_002.0


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("unit", "marks tests as unit tests"),
        ("monitoring", "marks tests as monitoring core tests"),
        ("client", "marks tests as HTTP client tests"),
        ("config", "marks tests as configuration tests"),
        ("interface", "marks tests as terminal interface tests"),
        ("cli", "marks tests as CLI tests"),
        ("utils", "marks tests as utility tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _clear_latmon_env(monkeypatch):
    """Keep developer LATMON_* variables out of configuration tests."""
    for key in list(os.environ):
        if key.startswith("LATMON_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _isolate_config_search(tmp_path, monkeypatch):
    """Run from an empty directory with an empty home so no latmon.toml is found."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)


def make_header(height: int, timestamp_nanos: int = BLOCK_TIMESTAMP_NANOS) -> dict[str, Any]:
    """Block header as served by the block data API."""
    return {"height": height, "timestamp_nanosec": str(timestamp_nanos)}


class FakeClock:
    """Clock with a fixed ``now`` that records sleeps.

    When ``gated`` is set, every sleep blocks until :meth:`release` is called.
    """

    def __init__(self, now: float = NOW, gated: bool = False) -> None:
        self._now = now
        self.gated = gated
        self.sleeps: list[float] = []
        self.sleeping = asyncio.Event()
        self._gate = asyncio.Event()

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.sleeping.set()
        if self.gated:
            await self._gate.wait()
        else:
            await asyncio.sleep(0)

    def release(self) -> None:
        self._gate.set()


class FakeBlockClient:
    """Scripted stand-in for :class:`latmon.client.BlockDataClient`.

    ``last`` maps a mode to either a height or a list of outcomes. ``script``
    maps ``(mode, height)`` to a list of outcomes consumed one per request;
    once exhausted the height answers with a default header. An outcome that
    is an exception instance is raised, anything else is returned.
    ``gates`` holds events a request waits on before answering.
    """

    root_url = "http://blocks.test"

    def __init__(
        self,
        last: dict[Mode, Any] | None = None,
        script: dict[tuple[Mode, int], list[Any]] | None = None,
        gates: dict[Any, asyncio.Event] | None = None,
    ) -> None:
        self.last = dict(last or {Mode.FINAL: 1000, Mode.OPTIMISTIC: 2000})
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.gates = dict(gates or {})
        self.requests: list[tuple[Mode, int | None]] = []
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def last_block_height(self, mode: Mode) -> int:
        self.requests.append((mode, None))
        gate = self.gates.get((mode, None))
        if gate is not None:
            await gate.wait()
        value = self.last[mode]
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, Exception):
            raise value
        return value

    async def block_header(self, height: int, mode: Mode) -> dict[str, Any] | None:
        self.requests.append((mode, height))
        gate = self.gates.get((mode, height))
        if gate is not None:
            await gate.wait()
        outcomes = self.script.get((mode, height))
        if outcomes:
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return make_header(height)

    def heights_requested(self, mode: Mode) -> list[int]:
        return [h for m, h in self.requests if m is mode and h is not None]


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_client():
    return FakeBlockClient()
