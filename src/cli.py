"""
Command-line interface for stream-alerts.

Provides commands to run the poller, check channels by hand, manage the
PostgreSQL watch-list and run diagnostic checks.

Usage:
    stream-alerts run                 # Poll until stopped or the list empties
    stream-alerts check CHANNEL       # One status check, no side effects
    stream-alerts check-once          # One pass over the watch-list
    stream-alerts init-db             # Create the watched_channels table
    stream-alerts watch add NAME...   # Manage the PostgreSQL watch-list
    stream-alerts health              # Check configuration and dependencies
"""

import asyncio
import signal
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import click

from src.config.settings import Settings, get_settings
from src.observability.logging import bind_context, setup_logging
from src.observability.metrics import get_metrics
from src.streams.errors import ConfigurationError, PersistenceError


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Stream Alerts - Twitch go-live notifications by polling Helix."""
    setup_logging(level="DEBUG" if debug else None)

    # Initialize tracing if enabled
    settings = get_settings()
    if settings.tracing_enabled:
        from src.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )


def _build_handler(settings: Settings):
    """Log every event, and POST it too when a webhook is configured."""
    from src.streams.handlers import CompositeHandler, LoggingHandler, WebhookHandler

    handlers = [LoggingHandler()]
    if settings.webhook_url:
        handlers.append(WebhookHandler(settings.webhook_url))
    if len(handlers) == 1:
        return handlers[0]
    return CompositeHandler(handlers)


async def _connect_database():
    """Open the PostgreSQL pool, reporting failures as PersistenceError."""
    from src.storage.database import Database

    db = Database()
    try:
        await db.connect()
    except Exception as e:
        raise PersistenceError(f"Failed to connect to database: {e}") from e
    return db


@asynccontextmanager
async def _open_watch_list(settings: Settings) -> AsyncIterator:
    """Yield the configured watch-list source, closing its pool afterwards."""
    from src.streams.watchlist import StaticWatchList

    if settings.watch_list_backend != "postgres":
        yield StaticWatchList.from_settings(settings)
        return

    from src.streams.repository import WatchListRepository

    db = await _connect_database()
    try:
        yield WatchListRepository(db)
    finally:
        await db.close()


def _open_client(settings: Settings, config):
    from src.streams.client import HelixCredentials, HelixStreamsClient

    return HelixStreamsClient(
        HelixCredentials.from_settings(settings),
        base_url=config.helix_base_url,
        timeout=config.request_timeout_seconds,
    )


@main.command()
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option(
    "--keep-running",
    is_flag=True,
    help="Keep polling when the watch-list is empty",
)
def run(metrics: bool, keep_running: bool) -> None:
    """Run the poller until stopped or the watch-list is empty."""
    from src.streams.config import PollerConfig
    from src.streams.engine import StreamAlertEngine

    bind_context(command="run")

    async def _run():
        settings = get_settings()
        config = PollerConfig()
        if keep_running:
            config = config.model_copy(update={"stop_when_empty": False})

        async with _open_watch_list(settings) as source, \
                _open_client(settings, config) as client:
            engine = StreamAlertEngine(
                source=source,
                handler=_build_handler(settings),
                client=client,
                config=config,
            )

            if metrics:
                get_metrics().start_server()

            # Handle shutdown signals
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, engine.stop)

            await engine.run()

        click.echo(f"Poller stopped after {engine.cycles} cycle(s)")

    try:
        asyncio.run(_run())
    except (ConfigurationError, PersistenceError) as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("channel")
def check(channel: str) -> None:
    """Check whether CHANNEL is live right now.

    Issues a single Helix request; nothing is written or dispatched.

    Example:
        stream-alerts check some_channel
    """
    from src.streams.config import PollerConfig
    from src.streams.errors import StatusCheckError, describe

    channel = channel.strip().lower()
    bind_context(command="check", channel=channel)

    async def _check():
        settings = get_settings()
        async with _open_client(settings, PollerConfig()) as client:
            return await client.get_live_status(channel)

    try:
        status = asyncio.run(_check())
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    except StatusCheckError as e:
        click.echo(click.style(f"Check failed ({describe(e.kind)}): {e}", fg="red"))
        sys.exit(1)

    if status is None:
        click.echo(f"{channel} is offline")
        return

    click.echo(click.style(f"{channel} is live", fg="green"))
    click.echo(f"  Title:    {status.title}")
    click.echo(f"  Category: {status.category or '-'}")
    click.echo(f"  Viewers:  {status.viewer_count}")
    click.echo(f"  Started:  {status.started_at.isoformat()}")


@main.command("check-once")
def check_once() -> None:
    """Run a single pass over the watch-list and print what happened.

    Behaves exactly like one poller cycle: new sessions are written back
    and dispatched to the configured handlers.
    """
    from src.streams.config import PollerConfig
    from src.streams.engine import StreamAlertEngine

    bind_context(command="check-once")

    async def _once():
        settings = get_settings()
        config = PollerConfig()
        async with _open_watch_list(settings) as source, \
                _open_client(settings, config) as client:
            engine = StreamAlertEngine(
                source=source,
                handler=_build_handler(settings),
                client=client,
                config=config,
            )
            return await engine.run_cycle()

    try:
        report = asyncio.run(_once())
    except (ConfigurationError, PersistenceError) as e:
        raise click.ClickException(str(e))

    click.echo("\nCycle Results:")
    click.echo("-" * 40)
    click.echo(f"  Channels in snapshot: {report.snapshot_size}")
    click.echo(f"  Checked:              {report.checked}")
    click.echo(f"  Suppressed:           {report.suppressed}")
    click.echo(f"  Went live:            {len(report.went_live)}")
    click.echo(f"  Failures:             {len(report.failures)}")
    click.echo(f"  Elapsed:              {report.elapsed:.2f}s")

    for event in report.went_live:
        click.echo(click.style(f"  ● {event.identifier}: {event.status.title}", fg="green"))
    for failure in report.failures:
        click.echo(click.style(f"  ✗ {failure}", fg="red"))

    if report.source_failed:
        sys.exit(1)


@main.command("init-db")
def init_db() -> None:
    """Create the watched_channels table."""
    from src.streams.repository import WatchListRepository

    async def _init():
        db = await _connect_database()
        try:
            await WatchListRepository(db).create_table()
        finally:
            await db.close()

    try:
        asyncio.run(_init())
    except PersistenceError as e:
        raise click.ClickException(str(e))
    click.echo("Database initialized successfully")


@main.group()
def watch() -> None:
    """Manage the PostgreSQL watch-list."""


def _with_repository(action):
    """Run ``action(repo)`` against a freshly connected repository."""
    from src.streams.repository import WatchListRepository

    async def _run():
        db = await _connect_database()
        try:
            return await action(WatchListRepository(db))
        finally:
            await db.close()

    try:
        return asyncio.run(_run())
    except PersistenceError as e:
        raise click.ClickException(str(e))


@watch.command("add")
@click.argument("channels", nargs=-1, required=True)
@click.option("--disabled", is_flag=True, help="Add with alerts turned off")
def watch_add(channels: tuple[str, ...], disabled: bool) -> None:
    """Add one or more channels (or update their alert flag)."""

    async def _add(repo):
        for name in channels:
            await repo.upsert(name, alerts_enabled=not disabled)

    _with_repository(_add)
    state = "disabled" if disabled else "enabled"
    for name in channels:
        click.echo(f"Watching {name.lower()} (alerts {state})")


@watch.command("remove")
@click.argument("channel")
def watch_remove(channel: str) -> None:
    """Stop watching CHANNEL."""
    removed = _with_repository(lambda repo: repo.remove(channel))
    if not removed:
        click.echo(click.style(f"{channel} is not on the watch-list", fg="yellow"))
        sys.exit(1)
    click.echo(f"Removed {channel.lower()}")


def _set_alerts(channel: str, enabled: bool) -> None:
    updated = _with_repository(lambda repo: repo.set_alerts_enabled(channel, enabled))
    if not updated:
        click.echo(click.style(f"{channel} is not on the watch-list", fg="yellow"))
        sys.exit(1)
    click.echo(f"Alerts {'enabled' if enabled else 'disabled'} for {channel.lower()}")


@watch.command("enable")
@click.argument("channel")
def watch_enable(channel: str) -> None:
    """Turn alerts on for CHANNEL."""
    _set_alerts(channel, True)


@watch.command("disable")
@click.argument("channel")
def watch_disable(channel: str) -> None:
    """Turn alerts off for CHANNEL."""
    _set_alerts(channel, False)


@watch.command("list")
def watch_list() -> None:
    """Show every watched channel, disabled ones included."""
    entries = _with_repository(lambda repo: repo.list_all())

    if not entries:
        click.echo("Watch-list is empty.")
        return

    click.echo(f"{'CHANNEL':25s}  {'ALERTS':6s}  LAST SESSION START")
    for entry in entries:
        alerts = "on" if entry.alerts_enabled else "off"
        last = (
            entry.last_live_started_at.isoformat()
            if entry.last_live_started_at
            else "-"
        )
        click.echo(f"{entry.identifier:25s}  {alerts:6s}  {last}")


@main.command()
def health() -> None:
    """Check configuration and dependencies."""
    import structlog
    logger = structlog.get_logger()

    settings = get_settings()

    async def _check() -> dict[str, bool]:
        results: dict[str, bool] = {
            "twitch_configured": settings.twitch_configured,
        }

        if settings.watch_list_backend == "postgres":
            try:
                db = await _connect_database()
                results["postgres"] = await db.health_check()
                await db.close()
            except Exception as e:
                results["postgres"] = False
                logger.error("Postgres health check failed", error=str(e))
        else:
            results["static_watch_list"] = bool(settings.watch_list)

        return results

    results = asyncio.run(_check())

    # Print results
    click.echo("\nHealth Check Results:")
    click.echo("-" * 40)
    click.echo(f"  watch-list backend: {settings.watch_list_backend}")

    for name, status in results.items():
        icon = "✓" if status else "✗"
        color = "green" if status else "red"
        click.echo(click.style(f"  {icon} {name}: {status}", fg=color))

    click.echo("-" * 40)

    if all(results.values()):
        click.echo(click.style("Ready to poll!", fg="green"))
        sys.exit(0)
    else:
        click.echo(click.style("Not ready to poll!", fg="red"))
        sys.exit(1)


if __name__ == "__main__":
    main()
