"""Reset notifiers — how a freshly issued reset token reaches its owner.

Learn: Delivery (email, chat, ...) is somebody else's job. The password
reset flow only hands a ResetTicket to a notifier, and it does so in a
FastAPI background task after the response has been produced. A slow or
broken notifier therefore cannot delay or undo the persisted token, and
cannot change what the caller sees.

Two notifiers ship:
- LogResetNotifier: development; records that a reset was issued
- WebhookResetNotifier: POSTs the reset link to a mail relay via httpx
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol
from urllib.parse import urlencode

import httpx
import structlog

from shareme.config import Settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class ResetTicket:
    """A pending reset ready for delivery."""

    email: str
    token: str
    expires_at: datetime


class ResetNotifier(Protocol):
    async def send(self, ticket: ResetTicket) -> None: ...


def reset_link(base_url: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


class LogResetNotifier:
    """Logs the reset instead of delivering it.

    The token itself is only logged when debug is on, so a development
    setup can complete the flow without a mail server.
    """

    def __init__(self, link_base_url: str, debug: bool = False):
        self.link_base_url = link_base_url
        self.debug = debug

    async def send(self, ticket: ResetTicket) -> None:
        if self.debug:
            logger.info(
                "password_reset.link",
                email=ticket.email,
                reset_link=reset_link(self.link_base_url, ticket.token),
                expires_at=ticket.expires_at.isoformat(),
            )
        else:
            logger.info(
                "password_reset.issued",
                email=ticket.email,
                expires_at=ticket.expires_at.isoformat(),
            )


class WebhookResetNotifier:
    """POST {email, resetLink, expiresAt} to a relay that sends the email."""

    def __init__(
        self,
        url: str,
        link_base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.link_base_url = link_base_url
        self.timeout = timeout
        self._transport = transport

    async def send(self, ticket: ResetTicket) -> None:
        payload = {
            "email": ticket.email,
            "resetLink": reset_link(self.link_base_url, ticket.token),
            "expiresAt": ticket.expires_at.isoformat(),
        }
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            resp = await client.post(self.url, json=payload)
            resp.raise_for_status()
        logger.info("password_reset.delivered", email=ticket.email)


def build_notifier(settings: Settings) -> ResetNotifier:
    """Pick the notifier named by SHAREME_RESET_NOTIFIER."""
    if settings.reset_notifier == "webhook":
        return WebhookResetNotifier(
            settings.reset_webhook_url, settings.reset_link_base_url
        )
    return LogResetNotifier(settings.reset_link_base_url, debug=settings.debug)


async def deliver(notifier: ResetNotifier, ticket: ResetTicket) -> None:
    """Background-task entry point: run the notifier, log any failure.

    Failures stay server-side; the forgot-password response has already
    been sent and looks the same whether or not delivery worked.
    """
    try:
        await notifier.send(ticket)
    except Exception:
        logger.exception("password_reset.delivery_failed", email=ticket.email)
