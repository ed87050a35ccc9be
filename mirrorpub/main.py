"""
mirrorpub — CLI entrypoint.

Usage:
    mirrorpub --help
    mirrorpub run
    mirrorpub select mirrors.json "North America/USA"
    mirrorpub serve --port 8000
    mirrorpub config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from mirrorpub import __version__
from mirrorpub.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


def _setup_logging(ctx: click.Context, default: str = "WARNING") -> None:
    obj = ctx.obj
    setup_logging(
        level=resolve_level(
            debug=obj["debug"], verbose=obj["verbose"], quiet=obj["quiet"], default=default,
        ),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
        quiet_third_party=not obj["debug"],
    )


def _open_publisher(ctx: click.Context, as_json: bool = False):  # type: ignore[no-untyped-def]
    """Load the publisher or exit 1 with the config error."""
    from mirrorpub.core.config.loader import ConfigError
    from mirrorpub.core.use_cases.publish import open_publisher

    try:
        return open_publisher(ctx.obj.get("config_path"))
    except ConfigError as e:
        if as_json:
            click.echo(json.dumps({"error": str(e)}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def _load_snapshot_file(path: str):  # type: ignore[no-untyped-def]
    from mirrorpub.adapters.oracle import FileOracle
    from mirrorpub.core.errors import OracleUnavailable

    try:
        return FileOracle(Path(path), timeout_s=0).fetch()
    except OracleUnavailable as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="mirrorpub")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to publish.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """mirrorpub — publish curated lists of up-to-date mirrors."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # serve picks its own default level
    if ctx.invoked_subcommand != "serve":
        _setup_logging(ctx)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Stop waiting for the outcome after N seconds. "
    "A run that already started still finishes before the command exits.",
)
@click.pass_context
def run(ctx: click.Context, as_json: bool, timeout: float | None) -> None:
    """Run one deployment now (manual trigger)."""
    from mirrorpub.core.models.run import Trigger, TriggerKind

    publisher = _open_publisher(ctx, as_json)
    try:
        outcome = publisher.coordinator.run_deployment(
            Trigger(kind=TriggerKind.MANUAL, source="cli"), timeout=timeout,
        )
    except TimeoutError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        click.echo("   Letting the started run finish before exiting...", err=True)
        sys.exit(1)
    finally:
        # never interrupts a started run
        publisher.coordinator.close()

    if as_json:
        click.echo(json.dumps(outcome.model_dump(mode="json"), indent=2))
        sys.exit(0 if outcome.ok else 1)

    if outcome.ok:
        click.secho(f"✅ Published run {outcome.run_id} ({outcome.duration_ms}ms)", fg="green", bold=True)
        for region, count in outcome.regions.items():
            color = "white" if count else "yellow"
            click.secho(f"   • {region}: {count} mirror(s)", fg=color)
        if outcome.page_url:
            click.echo(f"   → {outcome.page_url}")
        return

    click.secho(f"❌ Run {outcome.run_id} {outcome.status}", fg="red", bold=True)
    if outcome.failed_phase:
        click.echo(f"   phase: {outcome.failed_phase}")
    if outcome.error:
        kind = f"{outcome.error_kind}: " if outcome.error_kind else ""
        click.echo(f"   {kind}{outcome.error}")
    sys.exit(1)


@cli.command("select")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.argument("region")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def select_cmd(snapshot: str, region: str, as_json: bool) -> None:
    """Print the freshest alive mirrors of REGION in a SNAPSHOT file."""
    from mirrorpub.core.errors import MalformedRecord
    from mirrorpub.core.services.selector import select

    snap = _load_snapshot_file(snapshot)
    try:
        result = select(snap, region)
    except (MalformedRecord, ValueError) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    for url in result.urls:
        click.echo(url)


@cli.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
def regions(snapshot: str) -> None:
    """List the region paths present in a SNAPSHOT file."""
    snap = _load_snapshot_file(snapshot)
    for region in snap.regions():
        click.echo(str(region))


@cli.command()
@click.option("-n", "count", type=int, default=10, show_default=True, help="Number of runs.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def runs(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent deployment runs, newest first."""
    publisher = _open_publisher(ctx, as_json)
    outcomes = publisher.history.load(n=count)

    if as_json:
        click.echo(json.dumps([o.model_dump(mode="json") for o in outcomes], indent=2))
        return

    if not outcomes:
        click.echo("No runs recorded yet.")
        return

    status_color = {"success": "green", "failed": "red", "superseded": "yellow"}
    for o in outcomes:
        click.echo(f"{o.started_at}  {o.run_id}  {o.trigger.kind:<8} ", nl=False)
        click.secho(f"{o.status:<10}", fg=status_color.get(str(o.status), "white"), nl=False)
        detail = o.error_kind or ", ".join(f"{r}={n}" for r, n in o.regions.items())
        click.echo(f" {detail}")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port.")
@click.option("--no-schedule", is_flag=True, help="Disable the periodic trigger.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, no_schedule: bool) -> None:
    """Serve the trigger API and run the periodic schedule."""
    _setup_logging(ctx, default="INFO")

    from mirrorpub.core.services.coordinator import shutdown_coordinators
    from mirrorpub.core.services.scheduler import Scheduler
    from mirrorpub.ui.web.server import create_app, run_server

    publisher = _open_publisher(ctx)
    scheduler = None
    if not no_schedule:
        scheduler = Scheduler(
            publisher.coordinator,
            interval_s=publisher.config.schedule.interval_s,
            run_on_start=publisher.config.schedule.run_on_start,
        )
        scheduler.start()

    try:
        run_server(create_app(publisher), host=host, port=port)
    finally:
        if scheduler is not None:
            scheduler.stop(timeout=1.0)
        shutdown_coordinators()


@cli.group()
def config() -> None:
    """Publisher configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate publish.yml configuration."""
    from mirrorpub.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Publisher: {result.config.name} (group {result.config.group})")
        click.echo(f"   Oracle: {result.config.oracle.kind}")
        click.echo(f"   Hosting: {result.config.hosting.kind}")
        for region in result.config.regions:
            click.echo(f"     • {region.path} → {region.output}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        sys.exit(1)


if __name__ == "__main__":
    cli()
