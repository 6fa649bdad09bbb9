"""
Build notifications.

E-mails go out over SMTP (run in a worker thread) and chat messages through
the Telegram Bot API. Notification failures are logged and never fail the
build that triggered them. Alerts posted to the API are forwarded to Telegram.
"""

from __future__ import annotations

import asyncio
import html
import smtplib
from email.message import EmailMessage
from typing import Iterable, List, Optional

import httpx

from sitedeploy.core.logging_config import get_build_logger
from sitedeploy.server.core.config import SMTPConfig, TelegramConfig, settings

from .errors import AlertDeliveryError
from .events import SiteBuildCompleted
from .parameters import DEV_EMAIL, ParameterStore

logger = get_build_logger()

NO_OUTPUT = "No output available"


class EmailNotifier:
    """Send plain-text e-mails over SMTP."""

    def __init__(self, config: SMTPConfig) -> None:
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _send_sync(self, recipients: List[str], subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.config.from_address
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.config.host, self.config.port, timeout=30) as smtp:
            if self.config.use_tls:
                smtp.starttls()
            if self.config.username:
                smtp.login(self.config.username, self.config.password or "")
            smtp.send_message(message)

    async def send(self, recipients: str | Iterable[str], subject: str, body: str) -> None:
        to = [recipients] if isinstance(recipients, str) else list(recipients)
        if not self.enabled:
            logger.info("SMTP not configured, e-mail skipped", extra={"subject": subject, "to": to})
            return
        await asyncio.to_thread(self._send_sync, to, subject, body)


class TelegramNotifier:
    """Post messages to a Telegram chat."""

    def __init__(self, config: TelegramConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def send_message(self, text: str, chat_id: Optional[str] = None) -> dict:
        url = f"{self.config.api_base_url}/bot{self.config.bot_token}/sendMessage"
        payload = {"chat_id": chat_id or self.config.chat_id, "text": text, "parse_mode": "html"}

        if self._client is not None:
            response = await self._client.post(url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(url, json=payload)
        response.raise_for_status()
        return response.json()


def build_subject(site_name: str, status: str) -> str:
    return f"[{status}] Build {site_name}"


def build_body(event: SiteBuildCompleted, triggered_by: str) -> str:
    return (
        f"Site: {event.site.site_name}\n"
        f"Status: {event.status}\n"
        f"Time: {event.history.created_at:%Y-%m-%d %H:%M:%S}\n"
        f"Triggered by: {triggered_by}\n"
        "\n"
        f"{event.history.output_log or NO_OUTPUT}\n"
    )


class SendBuildNotification:
    """Listener sending build results to the developer mailbox and Telegram."""

    def __init__(
        self,
        parameters: ParameterStore,
        email: Optional[EmailNotifier] = None,
        telegram: Optional[TelegramNotifier] = None,
    ) -> None:
        self.parameters = parameters
        self.email = email
        self.telegram = telegram

    async def __call__(self, event: SiteBuildCompleted) -> None:
        user_email = event.user.email if event.user is not None else None
        if not user_email:
            logger.info(
                "No user email for build notification",
                extra={"site_name": event.site.site_name, "history_id": event.history.id},
            )
            return

        subject = build_subject(event.site.site_name, event.status)
        body = build_body(event, user_email)

        if self.email is not None:
            dev_email = await self.parameters.get_value(DEV_EMAIL, settings.build.dev_email)
            try:
                await self.email.send(dev_email, subject, body)
                logger.info(
                    "Build notification email sent",
                    extra={"site_name": event.site.site_name, "status": event.status, "to": dev_email},
                )
            except Exception as e:
                logger.error(
                    "Failed to send build notification email",
                    extra={"site_name": event.site.site_name, "error": str(e)},
                )

        if self.telegram is not None and self.telegram.enabled:
            text = f"<b>{html.escape(subject)}</b>\nTriggered by: {html.escape(user_email)}"
            try:
                await self.telegram.send_message(text)
            except Exception as e:
                logger.error(
                    "Failed to send build notification to Telegram",
                    extra={"site_name": event.site.site_name, "error": str(e)},
                )


def format_alert_message(message: str) -> str:
    """Comma-separated input becomes one trimmed value per line; anything else is sent as is."""
    parts = message.split(",")
    if len(parts) < 2:
        return message
    return "\n".join(part.strip() for part in parts).rstrip()


async def send_alert(notifier: TelegramNotifier, message: str) -> dict:
    """
    Forward an alert text to the configured Telegram chat.

    Raises:
        AlertDeliveryError: when Telegram is not configured or the request fails
    """
    if not notifier.enabled:
        logger.error("Telegram alert failed", extra={"error": "Telegram bot token or chat id is not configured"})
        raise AlertDeliveryError()

    try:
        result = await notifier.send_message(html.escape(format_alert_message(message), quote=False))
    except httpx.HTTPError as e:
        logger.error("Telegram alert failed", extra={"error": str(e)})
        raise AlertDeliveryError() from e

    logger.info("Telegram alert sent", extra={"chat_id": notifier.config.chat_id})
    return result
