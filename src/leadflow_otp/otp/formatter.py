"""Delivery formatter — renders the email that carries a one-time code."""

from __future__ import annotations

import enum
import html
from dataclasses import dataclass


class ChallengePurpose(enum.Enum):
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class DeliveryMessage:
    """Rendered message: a subject line plus HTML and plain-text bodies."""

    subject: str
    html: str
    text: str


_HEADINGS = {
    ChallengePurpose.LOGIN: (
        "🔐 Two-Factor Authentication Code",
        "Two-Factor Authentication",
        "Please use the following code to complete your login:",
        "If you need a new code, please log in again.",
    ),
    ChallengePurpose.PASSWORD_RESET: (
        "🔑 Password Reset Code",
        "Password Reset",
        "We received a request to reset your password. "
        "Use the following code to continue:",
        "If you need a new code, please request another password reset.",
    ),
}


def format_challenge_message(
    code: str,
    ttl_minutes: int,
    max_attempts: int,
    *,
    display_name: str = "",
    purpose: ChallengePurpose = ChallengePurpose.LOGIN,
    app_name: str = "LeadsFlow",
) -> DeliveryMessage:
    """Render the email for a freshly issued code.

    Both bodies state the code, how long it stays valid, how many
    attempts the recipient gets, and that it must never be shared.
    No I/O happens here.

    Parameters
    ----------
    code:
        The literal one-time code.
    ttl_minutes:
        Minutes until the code expires.
    max_attempts:
        Attempt ceiling for this code.
    display_name:
        Recipient's name for the greeting; omitted when empty.
    """
    subject_prefix, heading, intro, renewal = _HEADINGS[purpose]
    subject = f"{subject_prefix} - {app_name}"
    greeting = f"Hello {display_name}," if display_name else "Hello,"

    notices = [
        f"This code will expire in {ttl_minutes} minutes",
        f"You have {max_attempts} attempts to enter the correct code",
        "Never share this code with anyone",
        "If you didn't request this code, please contact support immediately",
    ]

    text = "\n".join(
        [
            greeting,
            "",
            intro,
            "",
            f"    {code}",
            "",
            "Important security information:",
            *(f"- {notice}" for notice in notices),
            "",
            f"This is an automated security message from {app_name}. "
            "Please do not reply to this email.",
            renewal,
        ]
    )

    items = "".join(f"<li>{html.escape(notice)}</li>" for notice in notices)
    html_greeting = html.escape(greeting)
    body = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #2563eb;">{heading}</h2>
  <p>{html_greeting}</p>
  <p>{html.escape(intro)}</p>
  <div style="background: #f3f4f6; padding: 30px; border-radius: 12px; margin: 30px 0; text-align: center; border: 2px dashed #d1d5db;">
    <h1 style="margin: 0; font-size: 48px; color: #2563eb; letter-spacing: 8px; font-family: 'Courier New', monospace;">{code}</h1>
  </div>
  <div style="background: #fef3c7; padding: 15px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #f59e0b;">
    <h4 style="margin: 0 0 10px 0; color: #92400e;">⚠️ Important Security Information:</h4>
    <ul style="margin: 0; padding-left: 20px; color: #92400e;">{items}</ul>
  </div>
  <p style="color: #6b7280; font-size: 14px;">
    This is an automated security message from {html.escape(app_name)}. Please do not reply to this email.
  </p>
  <p style="color: #6b7280; font-size: 12px;">{html.escape(renewal)}</p>
</div>
"""

    return DeliveryMessage(subject=subject, html=body, text=text)
