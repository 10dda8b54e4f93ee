import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from app.services import email_service


@pytest.fixture
def smtp_settings():
    with patch.multiple(
        "app.core.config",
        MAIL_USERNAME="sender@example.com",
        MAIL_PASSWORD="app-password",
        MAIL_FROM="Premium <no-reply@example.com>",
        MAIL_SERVER="smtp.example.com",
        MAIL_PORT=587,
    ):
        yield


@pytest.fixture
def smtp_send():
    with patch("app.services.email_service.aiosmtplib.send", new_callable=AsyncMock) as send:
        yield send


def test_sends_with_configured_server(smtp_settings, smtp_send):
    asyncio.run(email_service.send_email_html("Subject", ["to@example.com"], "<p>hi</p>"))

    message = smtp_send.call_args.args[0]
    kwargs = smtp_send.call_args.kwargs
    assert message["From"] == "Premium <no-reply@example.com>"
    assert message["To"] == "to@example.com"
    assert kwargs["hostname"] == "smtp.example.com"
    assert kwargs["port"] == 587
    assert kwargs["username"] == "sender@example.com"
    assert kwargs["password"] == "app-password"
    assert kwargs["start_tls"] is True
    assert kwargs["use_tls"] is False


def test_port_465_uses_direct_tls(smtp_settings, smtp_send):
    with patch("app.core.config.MAIL_PORT", 465):
        asyncio.run(email_service.send_email_html("Subject", ["to@example.com"], "<p>hi</p>"))

    kwargs = smtp_send.call_args.kwargs
    assert kwargs["use_tls"] is True
    assert kwargs["start_tls"] is False


def test_missing_credentials_raise(smtp_send):
    with patch("app.core.config.MAIL_PASSWORD", None):
        with pytest.raises(RuntimeError):
            asyncio.run(email_service.send_email_html("Subject", ["to@example.com"], "<p>hi</p>"))

    smtp_send.assert_not_called()


def test_code_email_reports_delivery_failure(smtp_settings, smtp_send):
    smtp_send.side_effect = OSError("connection refused")

    assert asyncio.run(email_service.send_code_email("to@example.com", "123456")) is False


def test_code_email_contains_code(smtp_settings, smtp_send):
    assert asyncio.run(email_service.send_code_email("to@example.com", "004217")) is True

    message = smtp_send.call_args.args[0]
    assert "004217" in message.get_body(("plain",)).get_content()
