"""Tests for the email senders and backend selection."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import aiosmtplib
import httpx
import pytest

from leadflow_otp.config import Settings
from leadflow_otp.services.email_service import (
    ConsoleEmailSender,
    SendGridEmailSender,
    SmtpEmailSender,
    build_sender,
)


def _settings(**overrides) -> Settings:
    return Settings(email_from="noreply@leadflow.test", **overrides)


# ──────────────────────────────────────────────────────────
# SMTP
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_smtp_send_builds_multipart_message():
    sender = SmtpEmailSender(_settings(smtp_host="smtp.test", smtp_port=2525))

    with patch("leadflow_otp.services.email_service.aiosmtplib.send", new=AsyncMock()) as send:
        ok = await sender.send("alice@example.com", "Subject", "<p>hi</p>", "hi")

    assert ok is True
    msg = send.await_args.args[0]
    assert msg["To"] == "alice@example.com"
    assert msg["From"] == "noreply@leadflow.test"
    assert msg["Subject"] == "Subject"
    assert msg.is_multipart()
    assert send.await_args.kwargs["hostname"] == "smtp.test"
    assert send.await_args.kwargs["port"] == 2525


@pytest.mark.asyncio
async def test_smtp_failure_returns_false():
    sender = SmtpEmailSender(_settings(smtp_host="smtp.test"))
    failing = AsyncMock(side_effect=aiosmtplib.SMTPException("relay denied"))

    with patch("leadflow_otp.services.email_service.aiosmtplib.send", new=failing):
        assert await sender.send("alice@example.com", "S", "<p>x</p>") is False


# ──────────────────────────────────────────────────────────
# SendGrid
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_sendgrid_accepted():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    config = _settings(sendgrid_api_key="SG.test-key")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        sender = SendGridEmailSender(config, client=client)
        ok = await sender.send("bob@example.com", "Code", "<p>123456</p>", "123456")

    assert ok is True
    assert seen[0].headers["Authorization"] == "Bearer SG.test-key"
    assert str(seen[0].url) == config.sendgrid_api_url
    body = seen[0].read().decode()
    assert "bob@example.com" in body
    assert "text/plain" in body and "text/html" in body


@pytest.mark.asyncio
async def test_sendgrid_rejected():
    transport = httpx.MockTransport(lambda request: httpx.Response(401, text="unauthorized"))
    async with httpx.AsyncClient(transport=transport) as client:
        sender = SendGridEmailSender(_settings(sendgrid_api_key="SG.bad"), client=client)
        assert await sender.send("bob@example.com", "Code", "<p>x</p>") is False


@pytest.mark.asyncio
async def test_sendgrid_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        sender = SendGridEmailSender(_settings(sendgrid_api_key="SG.k"), client=client)
        assert await sender.send("bob@example.com", "Code", "<p>x</p>") is False


# ──────────────────────────────────────────────────────────
# Console + backend selection
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_console_sender_does_not_log_body(caplog):
    caplog.set_level("INFO")
    ok = await ConsoleEmailSender().send("a@example.com", "Subject", "<p>654321</p>", "654321")
    assert ok is True
    assert "a@example.com" in caplog.text
    assert "654321" not in caplog.text


def test_build_sender_selection():
    assert isinstance(build_sender(_settings(email_backend="console")), ConsoleEmailSender)
    assert isinstance(
        build_sender(_settings(email_backend="smtp", smtp_host="smtp.test")), SmtpEmailSender
    )
    assert isinstance(
        build_sender(_settings(email_backend="SendGrid", sendgrid_api_key="SG.x")),
        SendGridEmailSender,
    )


def test_build_sender_falls_back_without_credentials():
    assert isinstance(build_sender(_settings(email_backend="smtp")), ConsoleEmailSender)
    assert isinstance(
        build_sender(_settings(email_backend="sendgrid", sendgrid_api_key="bogus")),
        ConsoleEmailSender,
    )


def test_build_sender_unknown_backend():
    with pytest.raises(ValueError):
        build_sender(_settings(email_backend="carrier-pigeon"))
