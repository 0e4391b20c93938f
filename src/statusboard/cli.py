"""Statusboard CLI entry point."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="statusboard",
    help="Statusboard — service probes, rolling stats and incidents",
    no_args_is_help=True,
)
console = Console()

STATUS_STYLES = {
    "operational": "green",
    "degraded": "yellow",
    "maintenance": "blue",
    "offline": "red",
}


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "dim")
    return f"[{style}]{status}[/{style}]"


async def _run_cycle(cycle, emitter):
    try:
        return await cycle.run()
    finally:
        if emitter is not None:
            await emitter.drain()


def _load(path: Path | None = None):
    from statusboard.config.loader import load_config

    try:
        return load_config(path=path)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def status() -> None:
    """Show stored services with their last recorded status."""
    from statusboard.store import create_store

    config = _load()
    store = create_store(config)
    services = asyncio.run(store.list_services())

    table = Table(title=f"{config.site.title}")
    table.add_column("Service", style="bold")
    table.add_column("URL")
    table.add_column("Status")
    table.add_column("Ping")

    for s in services:
        name = f"📌 {s.name}" if s.is_pinned else s.name
        ping = f"{s.ping_ms}ms" if s.ping_ms else "—"
        table.add_row(name, s.domain, _styled(s.status.value), ping)

    console.print(table)


@app.command()
def check() -> None:
    """Run one monitoring cycle against the configured store."""
    from statusboard.errors import MonitorCycleError
    from statusboard.events.emitter import create_cli_emitter
    from statusboard.monitor.cycle import MonitorCycle
    from statusboard.store import create_store

    config = _load()
    emitter = create_cli_emitter(config)
    cycle = MonitorCycle(create_store(config), config.monitor, emitter=emitter)
    try:
        result = asyncio.run(_run_cycle(cycle, emitter))
    except MonitorCycleError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    for outcome in result.outcomes:
        line = f"  {outcome.name}: {_styled(outcome.status.value)} ({outcome.ping_ms}ms)"
        if outcome.incident != "none":
            line += f" [bold]incident {outcome.incident}[/bold]"
        console.print(line)
    for service_id in result.failed:
        console.print(f"  [red]✗ {service_id}: check failed, see log[/red]")

    console.print(f"\n[bold]{result.services_checked}[/bold] service(s) checked at {result.timestamp}")
    if result.failed:
        raise typer.Exit(1)


@app.command()
def watch(
    interval: int | None = typer.Option(None, help="Seconds between cycles (default: monitor.interval_seconds)"),
    iterations: int | None = typer.Option(None, help="Stop after this many cycles"),
) -> None:
    """Run monitoring cycles on a fixed interval until interrupted."""
    from statusboard.events.emitter import create_cli_emitter
    from statusboard.monitor.cycle import MonitorCycle
    from statusboard.store import create_store

    config = _load()
    every = interval or config.monitor.interval_seconds
    emitter = create_cli_emitter(config)
    cycle = MonitorCycle(create_store(config), config.monitor, emitter=emitter)

    async def _watch() -> None:
        try:
            await cycle.run_forever(every, iterations=iterations)
        finally:
            if emitter is not None:
                await emitter.drain()

    console.print(f"Monitoring started. Checking every {every}s.")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("Stopped.")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8000, help="Bind port"),
) -> None:
    """Start the statusboard API server."""
    import uvicorn

    console.print(f"[bold]Statusboard[/bold] starting on http://{host}:{port}")
    uvicorn.run("statusboard.api.app:app_factory", host=host, port=port, factory=True, reload=False)


services_app = typer.Typer(name="services", help="Manage monitored services")
app.add_typer(services_app)


@services_app.command("sync")
def services_sync(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .statusboard.yaml"),
) -> None:
    """Create or refresh the services declared in the config file."""
    from statusboard.admin import sync_services
    from statusboard.store import create_store

    config = _load(path)
    try:
        created, updated = asyncio.run(sync_services(create_store(config), config.services))
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    for key in created:
        console.print(f"[green]+[/green] {key}")
    for key in updated:
        console.print(f"[yellow]~[/yellow] {key}")
    console.print(f"{len(created)} created, {len(updated)} updated")


@services_app.command("add")
def services_add(
    name: str = typer.Argument(help="Display name"),
    url: str = typer.Argument(help="URL to probe"),
    description: str | None = typer.Option(None, help="Optional description"),
    pinned: bool = typer.Option(False, "--pinned", help="Pin to the top of the page"),
) -> None:
    """Register a new service."""
    from statusboard.admin import create_service
    from statusboard.store import create_store

    config = _load()
    try:
        service = asyncio.run(
            create_service(create_store(config), name=name, domain=url, description=description, is_pinned=pinned)
        )
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Added {service.name} ({service.id})")


@services_app.command("remove")
def services_remove(service_id: str = typer.Argument(help="Service id")) -> None:
    """Delete a service with its stats and incidents."""
    from statusboard.admin import delete_service
    from statusboard.errors import ServiceNotFoundError
    from statusboard.store import create_store

    config = _load()
    try:
        asyncio.run(delete_service(create_store(config), service_id))
    except ServiceNotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Removed {service_id}")


config_app = typer.Typer(name="config", help="Configuration commands")
app.add_typer(config_app)


@config_app.command("validate")
def config_validate(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .statusboard.yaml"),
) -> None:
    """Validate configuration file."""
    from urllib.parse import urlparse

    import yaml

    from statusboard.admin import validate_probe_url
    from statusboard.config.loader import load_config
    from statusboard.events.emitter import EVENT_TYPES

    try:
        config = load_config(path=path)
        console.print("[green]✓[/green] YAML parses correctly")
        console.print("[green]✓[/green] Pydantic validation passes")
    except FileNotFoundError as exc:
        console.print(f"[red]✗ {exc}[/red]")
        raise typer.Exit(1)
    except yaml.YAMLError as exc:
        console.print(f"[red]✗ YAML parsing failed: {exc}[/red]")
        raise typer.Exit(1)
    except ValueError as exc:
        console.print("[green]✓[/green] YAML parses correctly")
        console.print(f"[red]✗ Pydantic validation failed: {exc}[/red]")
        raise typer.Exit(1)

    errors: list[str] = []
    warnings: list[str] = []

    for key, entry in config.services.items():
        try:
            validate_probe_url(entry.url)
        except ValueError as exc:
            errors.append(f"Service '{key}': {exc}")

    if config.monitor.probe_timeout >= config.monitor.interval_seconds:
        warnings.append(
            f"probe_timeout ({config.monitor.probe_timeout}s) is not shorter than "
            f"interval_seconds ({config.monitor.interval_seconds}s); cycles may overlap"
        )
    if not config.auth.cron_secret:
        warnings.append("auth.cron_secret is empty; the monitor trigger is unauthenticated")

    for i, wh in enumerate(config.webhooks):
        parsed = urlparse(wh.url)
        if not parsed.scheme or not parsed.netloc:
            errors.append(f"Webhook {i}: invalid URL '{wh.url}'")
        for evt in wh.events:
            if evt != "*" and evt not in EVENT_TYPES:
                warnings.append(f"Webhook {i}: unrecognized event type '{evt}'")

    if errors:
        for err in errors:
            console.print(f"[red]✗ {err}[/red]")
        console.print(f"\n[red bold]{len(errors)} validation error(s) found.[/red bold]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {len(config.services)} service URL(s) are valid")
    if config.webhooks:
        console.print(f"[green]✓[/green] {len(config.webhooks)} webhook(s) configured")
    for w in warnings:
        console.print(f"[yellow]! {w}[/yellow]")
    console.print("\n[green bold]Configuration is valid.[/green bold]")


@config_app.command("show")
def config_show(
    path: Path | None = typer.Option(None, "--path", "-p", help="Path to .statusboard.yaml"),
) -> None:
    """Print resolved configuration."""
    config = _load(path)

    console.print(f"[bold]{config.site.title}[/bold] v{config.site.version}\n")

    console.print("[bold]Monitor:[/bold]")
    console.print(f"  Interval: {config.monitor.interval_seconds}s")
    console.print(f"  Probe timeout: {config.monitor.probe_timeout}s")
    console.print(f"  Window: {config.monitor.window_days} days")
    console.print(f"  Concurrency: {config.monitor.concurrency}\n")

    console.print("[bold]Store:[/bold]")
    console.print(f"  {config.store.backend}" + (f" @ {config.store.db_path}" if config.store.backend == "sqlite" else ""))

    console.print("\n[bold]Services:[/bold]")
    for key, entry in config.services.items():
        pin = " (pinned)" if entry.pinned else ""
        console.print(f"  {key}: {entry.name} @ {entry.url}{pin}")


def main() -> None:
    app()
