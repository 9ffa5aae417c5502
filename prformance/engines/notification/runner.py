"""NotificationRunner: compute a report and post it to Discord."""

from __future__ import annotations

import random
from datetime import date, timedelta

import structlog

from prformance.engines.contribution_collector.models import Report
from prformance.engines.contribution_collector.runner import AggregationRunner
from prformance.engines.notification.discord import DiscordWebhook
from prformance.engines.notification.template import format_discord_message

log = structlog.get_logger("prformance.engine.notification")


class NotificationRunner:
    """Send contribution rankings to a Discord webhook."""

    def __init__(
        self,
        aggregation_runner: AggregationRunner,
        webhook: DiscordWebhook,
        *,
        lookback_days: int = 7,
        rng: random.Random | None = None,
    ) -> None:
        self._runner = aggregation_runner
        self._webhook = webhook
        self.lookback_days = lookback_days
        self._rng = rng

    async def send_report(self, start: date | str | None, end: date | str | None) -> Report:
        """Compute the report for ``[start, end]``, format it and post it.

        The webhook configuration is checked before any GitHub request.
        """
        self._webhook.ensure_configured()

        report = await self._runner.run(start, end)
        message = format_discord_message(report, rng=self._rng)
        await self._webhook.send(message)
        log.info(
            "notification.sent",
            developers=len(report.developers),
            **report.window.to_dict(),
        )
        return report

    async def run_scheduled(self, today: date | None = None) -> int:
        """Post the ranking of the last *lookback_days* days.

        Returns the number of ranked developers.
        """
        end = today or date.today()
        start = end - timedelta(days=self.lookback_days)
        report = await self.send_report(start, end)
        return len(report.developers)
