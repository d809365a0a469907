"""Email senders — deliver rendered OTP messages over SMTP or SendGrid."""

from __future__ import annotations

import logging
from email.message import EmailMessage

import aiosmtplib
import httpx

from leadflow_otp.config import Settings, settings

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """Sends transactional emails using the configured SMTP server."""

    def __init__(self, config: Settings = settings) -> None:
        self._config = config

    async def send(
        self, to_address: str, subject: str, html: str, text: str | None = None
    ) -> bool:
        """Send a multipart (plain + HTML) email.

        Returns ``False`` if the SMTP exchange fails.
        """
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._config.email_from
        msg["To"] = to_address
        msg.set_content(text or "This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")

        logger.info("Sending email to %s: %s", to_address, subject)
        try:
            await aiosmtplib.send(
                msg,
                hostname=self._config.smtp_host,
                port=self._config.smtp_port,
                username=self._config.smtp_username or None,
                password=self._config.smtp_password or None,
                start_tls=True,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", to_address, exc)
            return False

        logger.info("Email sent to %s", to_address)
        return True


class SendGridEmailSender:
    """Sends email through the SendGrid v3 ``mail/send`` HTTP endpoint."""

    def __init__(self, config: Settings = settings, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    async def send(
        self, to_address: str, subject: str, html: str, text: str | None = None
    ) -> bool:
        content = [{"type": "text/html", "value": html}]
        if text:
            content.insert(0, {"type": "text/plain", "value": text})
        payload = {
            "personalizations": [{"to": [{"email": to_address}]}],
            "from": {"email": self._config.email_from},
            "subject": subject,
            "content": content,
        }
        headers = {
            "Authorization": f"Bearer {self._config.sendgrid_api_key}",
            "Content-Type": "application/json",
        }

        try:
            if self._client is not None:
                resp = await self._client.post(
                    self._config.sendgrid_api_url, json=payload, headers=headers
                )
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.post(
                        self._config.sendgrid_api_url, json=payload, headers=headers
                    )
        except httpx.HTTPError as exc:
            logger.exception("SendGrid request error: %s", exc)
            return False

        if resp.status_code in (200, 202):
            logger.info("Email sent to %s: %s", to_address, subject)
            return True
        logger.error(
            "SendGrid delivery to %s failed: %s %s", to_address, resp.status_code, resp.text
        )
        return False


class ConsoleEmailSender:
    """Development sender — records that an email would go out.

    The body is never logged because it carries the one-time code.
    """

    async def send(
        self, to_address: str, subject: str, html: str, text: str | None = None
    ) -> bool:
        logger.info("[SIMULATED EMAIL] To: %s | Subject: %s", to_address, subject)
        return True


def build_sender(config: Settings = settings):
    """Pick the sender named by ``config.email_backend``.

    Falls back to :class:`ConsoleEmailSender` when the chosen backend is
    missing its credentials.
    """
    backend = config.email_backend.lower()
    if backend == "smtp":
        if config.smtp_host:
            return SmtpEmailSender(config)
        logger.warning("SMTP_HOST not set — emails will be simulated")
    elif backend == "sendgrid":
        if config.sendgrid_api_key.startswith("SG."):
            return SendGridEmailSender(config)
        logger.warning("SendGrid API key not properly configured — emails will be simulated")
    elif backend != "console":
        raise ValueError(f"Unknown email backend: {config.email_backend!r}")
    return ConsoleEmailSender()
