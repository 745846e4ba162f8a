"""Command line interface for latmon."""

from __future__ import annotations

import asyncio
from typing import Any

import click
from rich.console import Console

from latmon.client import BlockDataClient
from latmon.config import ConfigManager, init_config
from latmon.models import LogLevel, Mode, Sample
from latmon.monitoring import create_monitor
from latmon.utils.exceptions import ConfigurationError, LatmonError
from latmon.utils.logging_config import get_logger

logger = get_logger("cli")

MODE_CHOICE = click.Choice([m.value for m in Mode])


def _load(ctx: click.Context, overrides: dict[str, Any] | None = None) -> ConfigManager:
    """Build the configuration for a command, or exit with a readable error."""
    obj = ctx.obj or {}
    merged = dict(overrides or {})
    if obj.get("verbose"):
        merged["observability.log_level"] = LogLevel.DEBUG.value
    try:
        return init_config(obj.get("config"), merged)
    except ConfigurationError as e:
        Console(stderr=True).print(f"[red]Configuration error: {e}[/red]")
        raise click.exceptions.Exit(2) from e


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(package_name="latmon")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """latmon - live block latency monitor."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


@cli.command("dashboard")
@click.option("--mode", type=MODE_CHOICE, default=None, help="Initial block mode")
@click.option("--root-url", default=None, help="Block data API root URL")
@click.pass_context
def dashboard(ctx: click.Context, mode: str | None, root_url: str | None) -> None:
    """Start the terminal latency dashboard (Textual)."""
    from latmon.interface import run_dashboard

    manager = _load(
        ctx,
        {"dashboard.default_mode": mode, "api.root_url": root_url},
    )
    manager.setup_logging(console=False)
    run_dashboard(manager.config)


@cli.command("stream")
@click.option("--mode", type=MODE_CHOICE, default=None, help="Block mode to follow")
@click.option("--root-url", default=None, help="Block data API root URL")
@click.option(
    "--iterations",
    type=click.IntRange(min=1),
    default=None,
    help="Number of heights to walk after the last block",
)
@click.pass_context
def stream(
    ctx: click.Context,
    mode: str | None,
    root_url: str | None,
    iterations: int | None,
) -> None:
    """Print latency samples as they arrive."""
    manager = _load(
        ctx,
        {
            "dashboard.default_mode": mode,
            "api.root_url": root_url,
            "poller.max_iterations": iterations,
        },
    )
    manager.setup_logging()
    console = Console()
    try:
        asyncio.run(_stream(manager, console))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")


async def _stream(manager: ConfigManager, console: Console) -> None:
    config = manager.config
    threshold = config.dashboard.unhealthy_latency
    printed: set[int] = set()

    def on_series(samples: tuple[Sample, ...]) -> None:
        for sample in samples:
            if sample.block_height in printed:
                continue
            printed.add(sample.block_height)
            style = "red" if sample.latency_seconds > threshold else "green"
            console.print(
                f"[cyan]{sample.block_height}[/cyan] "
                f"[{style}]{sample.latency_seconds:.3f}s[/{style}]"
            )

    async with BlockDataClient(
        config.api.effective_root_url, timeout=config.api.request_timeout
    ) as client:
        controller = create_monitor(config, client)
        controller.sink.add_listener(on_series)
        console.print(
            f"Following [bold]{controller.initial_mode.label}[/bold] blocks "
            f"from {client.root_url}"
        )
        try:
            controller.start()
            await controller.wait()
        finally:
            stats = controller.sink.stats()
            await controller.aclose()

    logger.info("Stream finished after %d samples", len(printed))
    if stats.count:
        console.print(
            f"window of {stats.count}: min {stats.minimum:.3f}s "
            f"avg {stats.mean:.3f}s max {stats.maximum:.3f}s"
        )


@cli.command("health")
@click.option("--root-url", default=None, help="Block data API root URL")
@click.pass_context
def health(ctx: click.Context, root_url: str | None) -> None:
    """Check block data server health."""
    manager = _load(ctx, {"api.root_url": root_url})
    manager.setup_logging()
    console = Console()
    api = manager.config.api

    async def probe() -> str:
        async with BlockDataClient(
            api.effective_root_url, timeout=api.request_timeout
        ) as client:
            return await client.health()

    try:
        status = asyncio.run(probe())
    except LatmonError as e:
        console.print(f"[red]{api.effective_root_url} unreachable: {e}[/red]")
        raise click.exceptions.Exit(1) from e

    if status != "ok":
        console.print(f"[red]{api.effective_root_url}: {status}[/red]")
        raise click.exceptions.Exit(1)
    console.print(f"[green]{api.effective_root_url}: {status}[/green]")


@cli.group("config")
def config_group() -> None:
    """Configuration commands."""


@config_group.command("show")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["toml", "json"]),
    default="toml",
    help="Output format",
)
@click.pass_context
def config_show(ctx: click.Context, fmt: str) -> None:
    """Print the effective configuration."""
    manager = _load(ctx)
    click.echo(manager.export(fmt))


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
