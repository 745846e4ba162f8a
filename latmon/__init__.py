"""latmon - live block latency monitor for a blockchain data API."""

from __future__ import annotations

__version__ = "0.1.0"
