"""Terminal user interface."""

from __future__ import annotations

from latmon.interface.dashboard import LatencyDashboard, run_dashboard

__all__ = ["LatencyDashboard", "run_dashboard"]
