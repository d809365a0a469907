"""Challenge entity and its derived state."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime


class ChallengeStatus(enum.Enum):
    PENDING = "pending"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


class VerifyOutcome(enum.Enum):
    """Result of a single verification attempt."""

    VERIFIED = "verified"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    NO_ACTIVE_CHALLENGE = "no_active_challenge"


@dataclass
class Challenge:
    """One issued code together with its expiry and attempt budget.

    Only ``attempts`` changes after creation; everything else is fixed
    when the challenge is issued.
    """

    subject_id: str
    destination: str
    code: str
    issued_at: datetime
    expires_at: datetime
    max_attempts: int
    attempts: int = 0

    @property
    def remaining_attempts(self) -> int:
        return max(self.max_attempts - self.attempts, 0)


def status_of(challenge: Challenge, now: datetime) -> ChallengeStatus:
    """Derive the state of *challenge* at *now*.

    Expiry takes precedence over attempt exhaustion.
    """
    if now > challenge.expires_at:
        return ChallengeStatus.EXPIRED
    if challenge.attempts >= challenge.max_attempts:
        return ChallengeStatus.EXHAUSTED
    return ChallengeStatus.PENDING


_MESSAGES = {
    VerifyOutcome.VERIFIED: "{label} verification successful.",
    VerifyOutcome.EXPIRED: "{label} code has expired. Please request a new OTP.",
    VerifyOutcome.ATTEMPTS_EXHAUSTED: "Maximum attempts exceeded. Please request a new OTP.",
    VerifyOutcome.NO_ACTIVE_CHALLENGE: (
        "No active {label} session found. Please request a new OTP."
    ),
}


@dataclass(frozen=True)
class VerifyResult:
    """Value object returned by :meth:`ChallengeManager.verify`."""

    outcome: VerifyOutcome
    remaining_attempts: int | None = None
    label: str = "2FA"

    @property
    def success(self) -> bool:
        return self.outcome is VerifyOutcome.VERIFIED

    @property
    def message(self) -> str:
        """User-facing explanation of the outcome."""
        if self.outcome is VerifyOutcome.INVALID_CODE:
            return (
                f"Invalid {self.label} code. "
                f"{self.remaining_attempts} attempts remaining."
            )
        return _MESSAGES[self.outcome].format(label=self.label)
