"""Widget components for the terminal dashboard."""

from __future__ import annotations

from latmon.interface.widgets.latency_chart import LatencyChart, render_series
from latmon.interface.widgets.mode_selector import ModeSelector

__all__ = [
    "LatencyChart",
    "ModeSelector",
    "render_series",
]
