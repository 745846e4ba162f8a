"""Latency chart widget.

Draws the sliding window as a horizontal bar chart: one row per block
height (oldest at the top), bar length proportional to latency. Rendering
lives in :func:`render_series` so it can be exercised without an app.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from textual.widgets import Static

from latmon.models import Mode, Sample, SeriesStats

logger = logging.getLogger(__name__)

BAR_GLYPH = "█"
NEGATIVE_GLYPH = "◂"


def _fmt_seconds(value: float | None) -> str:
    return "-" if value is None else f"{value:.3f}s"


def latency_bar(latency: float, scale: float, width: int) -> str:
    """Bar for ``latency`` where ``scale`` seconds fill ``width`` cells."""
    if latency < 0:
        return NEGATIVE_GLYPH
    if scale <= 0:
        return ""
    cells = round(min(latency / scale, 1.0) * width)
    return BAR_GLYPH * max(cells, 1 if latency > 0 else 0)


def render_series(
    samples: Sequence[Sample],
    mode: Mode,
    unhealthy_latency: float = 5.0,
    bar_width: int = 40,
    subtitle: str | None = None,
) -> Panel:
    """Render the window as a Rich panel."""
    stats = SeriesStats.from_samples(list(samples))
    title = (
        f"{mode.label} block latency  "
        f"last {_fmt_seconds(stats.last)}  "
        f"min {_fmt_seconds(stats.minimum)}  "
        f"avg {_fmt_seconds(stats.mean)}  "
        f"max {_fmt_seconds(stats.maximum)}"
    )

    if not samples:
        body: Any = Text("Waiting for blocks…", style="dim")
        return Panel(body, title=title, subtitle=subtitle)

    scale = max(unhealthy_latency, stats.maximum or 0.0)
    table = Table(show_header=True, box=None, expand=True, pad_edge=False)
    table.add_column("Height", style="cyan", no_wrap=True)
    table.add_column("Latency", justify="right", no_wrap=True)
    table.add_column("", ratio=1, no_wrap=True)

    for sample in samples:
        latency = sample.latency_seconds
        if latency < 0:
            style = "magenta"
        elif latency > unhealthy_latency:
            style = "red"
        else:
            style = "green"
        table.add_row(
            str(sample.block_height),
            Text(f"{latency:.3f}s", style=style),
            Text(latency_bar(latency, scale, bar_width), style=style),
        )

    legend = Text(
        f"{len(samples)} samples · heights {samples[0].block_height}–"
        f"{samples[-1].block_height} · red above {unhealthy_latency:g}s",
        style="dim",
    )
    return Panel(Group(table, legend), title=title, subtitle=subtitle)


class LatencyChart(Static):
    """Static widget redrawn from the series sink."""

    DEFAULT_CSS = """
    LatencyChart {
        height: 1fr;
        min-height: 12;
        overflow-y: auto;
    }
    """

    def __init__(
        self,
        mode: Mode = Mode.FINAL,
        unhealthy_latency: float = 5.0,
        bar_width: int = 40,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        """Initialize the chart.

        Args:
            mode: Mode shown in the title
            unhealthy_latency: Seconds above which bars turn red
            bar_width: Cells used by the longest bar
        """
        super().__init__(*args, **kwargs)
        self.mode = mode
        self.unhealthy_latency = unhealthy_latency
        self.bar_width = bar_width
        self._samples: tuple[Sample, ...] = ()

    def on_mount(self) -> None:
        self.redraw(self._samples)

    def redraw(self, samples: tuple[Sample, ...]) -> None:
        """Series sink listener: replace the displayed window."""
        self._samples = samples
        self.update(
            render_series(
                samples,
                self.mode,
                unhealthy_latency=self.unhealthy_latency,
                bar_width=self.bar_width,
            )
        )
