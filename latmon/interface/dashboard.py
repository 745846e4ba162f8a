"""Textual terminal dashboard for latmon.

Provides the live latency chart with a finalized/optimistic mode switch.

References:
- Textual framework documentation: https://textual.textualize.io/
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, Static

from latmon.client import BlockDataClient
from latmon.interface.widgets import LatencyChart, ModeSelector
from latmon.models import Mode, Sample
from latmon.monitoring import create_monitor

if TYPE_CHECKING:
    from latmon.models import Config
    from latmon.monitoring import ModeController

logger = logging.getLogger(__name__)


class LatencyDashboard(App):
    """Live block latency dashboard."""

    TITLE = "latmon"
    CSS = """
    Screen { layout: vertical; }
    #chart { height: 1fr; }
    #statusbar { height: 1; padding: 0 1; }
    """

    BINDINGS: ClassVar[list[tuple[str, str, str]]] = [
        ("f", "select_mode('final')", "Finalized"),
        ("o", "select_mode('optimistic')", "Optimistic"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        config: Config,
        client: BlockDataClient | None = None,
        refresh_interval: float = 0.5,
    ) -> None:
        """Initialize terminal dashboard."""
        super().__init__()
        self.config = config
        self.client = client or BlockDataClient(
            config.api.effective_root_url,
            timeout=config.api.request_timeout,
        )
        self.controller: ModeController = create_monitor(config, self.client)
        self.refresh_interval = max(0.1, float(refresh_interval))
        initial = config.dashboard.default_mode
        self.selector = ModeSelector(initial_selection=initial, id="modes")
        self.chart = LatencyChart(
            mode=initial,
            unhealthy_latency=config.dashboard.unhealthy_latency,
            bar_width=config.dashboard.bar_width,
            id="chart",
        )
        self.statusbar = Static(id="statusbar")

    def compose(self) -> ComposeResult:
        """Compose the dashboard layout."""
        yield Header(show_clock=True)
        yield self.selector
        yield self.chart
        yield self.statusbar
        yield Footer()

    async def on_mount(self) -> None:
        """Open the API session and start monitoring the default mode."""
        self.sub_title = self.client.root_url
        await self.client.start()
        self.controller.sink.add_listener(self._on_series)
        self.controller.start()
        self._update_status()
        self.set_interval(self.refresh_interval, self._update_status)

    async def on_unmount(self) -> None:
        """Stop pollers and close the API session."""
        self.controller.sink.remove_listener(self._on_series)
        await self.controller.aclose()
        await self.client.close()

    def on_mode_selector_selection_changed(
        self, message: ModeSelector.SelectionChanged
    ) -> None:
        """Switch the monitored mode from the selector buttons."""
        self._switch(message.mode)

    def action_select_mode(self, mode: str) -> None:
        """Switch the monitored mode from a key binding."""
        selected = Mode(mode)
        self.selector.active = selected
        self._switch(selected)

    def _switch(self, mode: Mode) -> None:
        logger.info("Switching to %s mode", mode.value)
        self.chart.mode = mode
        self.controller.select(mode)
        self._update_status()

    def _on_series(self, samples: tuple[Sample, ...]) -> None:
        self.chart.redraw(samples)

    def _update_status(self) -> None:
        c = self.controller
        start = "-" if c.start_height is None else str(c.start_height)
        self.statusbar.update(
            Text(
                f"mode {c.mode.value} · epoch {c.epoch} · {c.state.value} · "
                f"start height {start} · samples {len(c.sink)}/{c.sink.max_length}",
                style="dim",
            )
        )


def run_dashboard(config: Config) -> None:
    """Run the Textual dashboard App."""
    LatencyDashboard(config).run()
