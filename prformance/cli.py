"""CLI entry point: prformance.

Subcommands:
    prformance                                   # Start the HTTP server
    prformance run 2024-01-01 2024-02-01         # Print the JSON report
    prformance send-discord --startDate=... --endDate=... [--webhook=URL]
    prformance analyze last-week|this-month|last-month
    prformance schedule                          # Post the ranking periodically
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import TypeVar

import click
from dotenv import load_dotenv

from prformance.core.config import Settings
from prformance.core.logging import setup_logging
from prformance.engines.contribution_collector.runner import (
    AggregationRunner,
    build_client,
    build_runner,
)
from prformance.engines.notification.discord import DiscordWebhook
from prformance.engines.notification.runner import NotificationRunner
from prformance.engines.notification.template import format_ranking
from prformance.scheduler import create_scheduler
from prformance.services import ServiceError, ValidationError

T = TypeVar("T")

_RUN_USAGE = "Usage: prformance run <startDate:YYYY-MM-DD> <endDate:YYYY-MM-DD>"
_SEND_USAGE = (
    "Usage: prformance send-discord --startDate=YYYY-MM-DD --endDate=YYYY-MM-DD [--webhook=URL]"
)
_PERIODS = ("last-week", "this-month", "last-month")


def preset_range(period: str, today: date | None = None) -> tuple[date, date]:
    """Return ``(start, end)`` for a named period ending today.

    last-week:  seven days ago to today
    this-month: first day of the current month to today
    last-month: first to last day of the previous month
    """
    today = today or date.today()
    if period == "last-week":
        return today - timedelta(days=7), today
    if period == "this-month":
        return today.replace(day=1), today
    if period == "last-month":
        last_day = today.replace(day=1) - timedelta(days=1)
        return last_day.replace(day=1), last_day
    raise ValidationError(f"unknown period {period!r}, expected one of: {', '.join(_PERIODS)}")


@asynccontextmanager
async def _open_runner(settings: Settings) -> AsyncIterator[AggregationRunner]:
    """Aggregation runner whose GitHub client is closed on exit."""
    client = build_client(settings)
    try:
        yield build_runner(settings, client)
    finally:
        await client.close()


def _execute(coro_fn: Callable[[], Awaitable[T]], *, usage: str | None = None) -> T:
    """Run *coro_fn* and turn service errors into exit code 1.

    *usage* is echoed after the error when the input itself was rejected.
    """
    try:
        return asyncio.run(coro_fn())
    except ServiceError as exc:
        click.echo(f"Error: {exc}", err=True)
        if usage and isinstance(exc, ValidationError):
            click.echo(usage, err=True)
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx: click.Context) -> None:
    """PRFormance: GitHub organization contribution ranking."""
    load_dotenv()
    setup_logging()
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@main.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address")
@click.option("--port", type=int, default=None, help="Port (default: $PORT or 3000)")
def serve(host: str, port: int | None) -> None:
    """Start the HTTP server."""
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(
        "prformance.api:create_app",
        factory=True,
        host=host,
        port=port or settings.port,
        log_config=None,
    )


@main.command("run")
@click.argument("dates", nargs=-1)
def run(dates: tuple[str, ...]) -> None:
    """Print the report for START END as JSON."""
    if len(dates) != 2:
        click.echo(_RUN_USAGE, err=True)
        sys.exit(1)
    start, end = dates
    settings = Settings.from_env()

    async def _run() -> dict:
        async with _open_runner(settings) as runner:
            report = await runner.run(start, end)
        return report.to_dict()

    click.echo(json.dumps(_execute(_run, usage=_RUN_USAGE), indent=2, ensure_ascii=False))


@main.command("send-discord")
@click.option("--startDate", "start_date", default=None, help="Start date (YYYY-MM-DD)")
@click.option("--endDate", "end_date", default=None, help="End date (YYYY-MM-DD)")
@click.option("--webhook", default=None, help="Webhook URL (default: $DISCORD_WEBHOOK_URL)")
def send_discord(start_date: str | None, end_date: str | None, webhook: str | None) -> None:
    """Compute the report and post the ranking to Discord."""
    if not start_date or not end_date:
        click.echo(_SEND_USAGE, err=True)
        sys.exit(1)
    settings = Settings.from_env()
    discord = DiscordWebhook(
        webhook or settings.discord_webhook_url,
        username=settings.discord_username,
        avatar_url=settings.discord_avatar_url,
    )

    async def _send() -> int:
        discord.ensure_configured()
        async with _open_runner(settings) as runner:
            report = await NotificationRunner(runner, discord).send_report(start_date, end_date)
        return len(report.developers)

    count = _execute(_send, usage=_SEND_USAGE)
    click.echo(f"Ranking with {count} developers sent to Discord.")


@main.command("analyze")
@click.argument("period", type=click.Choice(_PERIODS))
def analyze(period: str) -> None:
    """Print the top 10 for a preset period."""
    start, end = preset_range(period)
    settings = Settings.from_env()

    async def _analyze() -> list[str]:
        async with _open_runner(settings) as runner:
            report = await runner.run(start, end)
        return format_ranking(report)

    lines = _execute(_analyze)
    click.echo(f"Ranking {period} ({start.isoformat()} to {end.isoformat()}):")
    for line in lines:
        click.echo(line)


@main.command("schedule")
@click.option("--interval", type=float, default=None, help="Seconds between posts")
@click.option("--now", "run_now", is_flag=True, help="Post once immediately on start")
def schedule(interval: float | None, run_now: bool) -> None:
    """Post the ranking of the last lookback window every interval."""
    settings = Settings.from_env()
    discord = DiscordWebhook(
        settings.discord_webhook_url,
        username=settings.discord_username,
        avatar_url=settings.discord_avatar_url,
    )

    async def _schedule() -> None:
        discord.ensure_configured()
        async with _open_runner(settings) as runner:
            notifier = NotificationRunner(
                runner, discord, lookback_days=settings.report_lookback_days
            )
            scheduler = create_scheduler(
                notifier,
                interval=interval or settings.report_interval,
                run_immediately=run_now,
            )
            await scheduler.run_forever()

    try:
        _execute(_schedule)
    except KeyboardInterrupt:
        click.echo("Scheduler stopped.", err=True)


if __name__ == "__main__":
    main()
