import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from sitedeploy.build.errors import AlertDeliveryError
from sitedeploy.build.events import SiteBuildCompleted
from sitedeploy.build.notifications import (
    NO_OUTPUT,
    EmailNotifier,
    SendBuildNotification,
    TelegramNotifier,
    build_body,
    build_subject,
    format_alert_message,
    send_alert,
)
from sitedeploy.build.parameters import DEV_EMAIL
from sitedeploy.core.database.entities import BuildHistory, Site, User
from sitedeploy.server.core.config import SMTPConfig, TelegramConfig


def _event(user=None, output="line1\nline2"):
    site = Site(id=1, site_name="shop", path_source_code="/srv/shop", sh_content_dir="x", path_log="y")
    history = BuildHistory(
        id=7, site_id=1, status="success", output_log=output, created_at=datetime(2026, 10, 19, 8, 30, 0)
    )
    return SiteBuildCompleted(history=history, site=site, status="success", user=user)


class TestMessageFormatting:
    def test_subject(self):
        assert build_subject("shop", "failed") == "[failed] Build shop"

    def test_body(self):
        body = build_body(_event(), "alice@example.com")

        assert "Site: shop" in body
        assert "Status: success" in body
        assert "Time: 2026-10-19 08:30:00" in body
        assert "Triggered by: alice@example.com" in body
        assert body.rstrip().endswith("line1\nline2")

    def test_body_without_output(self):
        assert NO_OUTPUT in build_body(_event(output=None), "a@b.c")


class TestEmailNotifier:
    async def test_skipped_when_not_configured(self):
        with patch("sitedeploy.build.notifications.smtplib.SMTP") as smtp:
            await EmailNotifier(SMTPConfig()).send("a@b.c", "subject", "body")

        smtp.assert_not_called()

    async def test_sends_over_smtp(self):
        config = SMTPConfig(host="smtp.test", port=2525, username="bot", password="pw", use_tls=True)
        with patch("sitedeploy.build.notifications.smtplib.SMTP") as smtp:
            await EmailNotifier(config).send(["a@b.c", "d@e.f"], "subject", "body")

        smtp.assert_called_once_with("smtp.test", 2525, timeout=30)
        connection = smtp.return_value.__enter__.return_value
        connection.starttls.assert_called_once()
        connection.login.assert_called_once_with("bot", "pw")
        message = connection.send_message.call_args.args[0]
        assert message["To"] == "a@b.c, d@e.f"
        assert message["Subject"] == "subject"


class TestTelegramNotifier:
    async def test_posts_message(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        config = TelegramConfig(bot_token="TOKEN", chat_id="42", api_base_url="http://mock-telegram")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await TelegramNotifier(config, client=client).send_message("<b>hi</b>")

        assert result == {"ok": True}
        assert str(requests[0].url) == "http://mock-telegram/botTOKEN/sendMessage"
        assert json.loads(requests[0].content) == {"chat_id": "42", "text": "<b>hi</b>", "parse_mode": "html"}

    async def test_http_error_is_raised(self):
        config = TelegramConfig(bot_token="TOKEN", chat_id="42", api_base_url="http://mock-telegram")
        transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"ok": False}))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await TelegramNotifier(config, client=client).send_message("hi")

    def test_enabled_needs_token_and_chat(self):
        assert not TelegramNotifier(TelegramConfig(bot_token="t")).enabled
        assert TelegramNotifier(TelegramConfig(bot_token="t", chat_id="1")).enabled


class TestAlerts:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Disk full", "Disk full"),
            ("a, b ,c", "a\nb\nc"),
            ("host web-01,load 9.5,", "host web-01\nload 9.5"),
        ],
    )
    def test_format_alert_message(self, message, expected):
        assert format_alert_message(message) == expected

    async def test_send_alert_posts_formatted_text(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        config = TelegramConfig(bot_token="TOKEN", chat_id="42", api_base_url="http://mock-telegram")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await send_alert(TelegramNotifier(config, client=client), "cpu<90%,disk")

        assert result == {"ok": True}
        assert requests[0]["text"] == "cpu&lt;90%\ndisk"
        assert requests[0]["chat_id"] == "42"

    async def test_send_alert_without_chat_id(self):
        with pytest.raises(AlertDeliveryError):
            await send_alert(TelegramNotifier(TelegramConfig(bot_token="TOKEN")), "hi")

    async def test_send_alert_http_failure(self):
        config = TelegramConfig(bot_token="TOKEN", chat_id="42", api_base_url="http://mock-telegram")
        transport = httpx.MockTransport(lambda request: httpx.Response(502))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(AlertDeliveryError) as exc_info:
                await send_alert(TelegramNotifier(config, client=client), "hi")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Failed to send Telegram alert"


class TestSendBuildNotification:
    async def test_without_user_email_nothing_is_sent(self, parameters):
        email = MagicMock(send=AsyncMock())
        listener = SendBuildNotification(parameters, email=email)

        await listener(_event(user=None))

        email.send.assert_not_called()

    async def test_mails_dev_address(self, parameters):
        await parameters.set_value(DEV_EMAIL, "dev@shop.test")
        email = MagicMock(send=AsyncMock())
        telegram = MagicMock(enabled=True, send_message=AsyncMock())
        listener = SendBuildNotification(parameters, email=email, telegram=telegram)

        await listener(_event(user=User(id=1, name="Alice", email="alice@example.com")))

        email.send.assert_awaited_once()
        to, subject, body = email.send.await_args.args
        assert to == "dev@shop.test"
        assert subject == "[success] Build shop"
        assert "Triggered by: alice@example.com" in body
        telegram.send_message.assert_awaited_once()
        assert "[success] Build shop" in telegram.send_message.await_args.args[0]

    async def test_delivery_failures_are_swallowed(self, parameters):
        email = MagicMock(send=AsyncMock(side_effect=OSError("smtp down")))
        telegram = MagicMock(enabled=True, send_message=AsyncMock(side_effect=httpx.ConnectError("down")))
        listener = SendBuildNotification(parameters, email=email, telegram=telegram)

        await listener(_event(user=User(id=1, name="Alice", email="alice@example.com")))

        telegram.send_message.assert_awaited_once()
