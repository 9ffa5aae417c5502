"""Discord webhook sender."""

from __future__ import annotations

import httpx
import structlog

from prformance.services import DeliveryError, WebhookNotConfiguredError

log = structlog.get_logger("prformance.engine.notification")

DEFAULT_USERNAME = "PRFormance Bot"
DEFAULT_AVATAR_URL = "https://github.githubassets.com/images/modules/logos_page/GitHub-Mark.png"


class DiscordWebhook:
    """Post plain messages to a Discord webhook with mentions disabled.

    Callers pass the values resolved by :class:`~prformance.core.config.Settings`.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        username: str | None = None,
        avatar_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or None
        self.username = username or DEFAULT_USERNAME
        self.avatar_url = avatar_url or DEFAULT_AVATAR_URL
        self._transport = transport

    def payload(self, content: str) -> dict:
        return {
            "content": content,
            "username": self.username,
            "avatar_url": self.avatar_url,
            "allowed_mentions": {"parse": []},
        }

    def ensure_configured(self) -> None:
        if not self.url:
            raise WebhookNotConfiguredError(
                "Discord webhook URL is not configured (pass --webhook or set DISCORD_WEBHOOK_URL)"
            )

    async def send(self, content: str) -> None:
        """POST *content* to the webhook."""
        self.ensure_configured()
        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                resp = await client.post(self.url, json=self.payload(content))
            except httpx.HTTPError as exc:
                log.error("discord.request_failed", error=str(exc))
                raise DeliveryError(f"Discord webhook request failed: {exc}") from exc

        if resp.status_code >= 400:
            log.error("discord.rejected", status=resp.status_code, body=resp.text[:200])
            raise DeliveryError(f"Discord webhook returned HTTP {resp.status_code}")
        log.info("discord.sent", length=len(content))
