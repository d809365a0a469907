"""Challenge lifecycle manager — issues, delivers, verifies and expires OTPs."""

from __future__ import annotations

import asyncio
import contextlib
import hmac
import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from leadflow_otp.config import settings
from leadflow_otp.otp.challenge import (
    Challenge,
    ChallengeStatus,
    VerifyOutcome,
    VerifyResult,
    status_of,
)
from leadflow_otp.otp.formatter import ChallengePurpose, format_challenge_message
from leadflow_otp.otp.generator import generate_code
from leadflow_otp.otp.store import LOGIN_NAMESPACE, ChallengeStore, make_key

logger = logging.getLogger(__name__)

_LABELS = {
    ChallengePurpose.LOGIN: "2FA",
    ChallengePurpose.PASSWORD_RESET: "reset",
}


class MessageSender(Protocol):
    """Anything able to deliver a rendered message to an address."""

    async def send(
        self, to_address: str, subject: str, html: str, text: str | None = None
    ) -> bool: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


class ChallengeManager:
    """Owns the lifecycle of one namespace of OTP challenges.

    Login 2FA and password reset each get their own manager; both may
    share one :class:`ChallengeStore` because keys are namespaced.

    Wrong codes, expiry and exhaustion are reported through
    :class:`VerifyResult`, never raised.  A failed delivery makes
    :meth:`issue` return ``False`` but leaves the challenge stored.
    """

    def __init__(
        self,
        store: ChallengeStore,
        sender: MessageSender,
        *,
        namespace: str = LOGIN_NAMESPACE,
        purpose: ChallengePurpose = ChallengePurpose.LOGIN,
        ttl: timedelta | None = None,
        max_attempts: int | None = None,
        dispatch_timeout: float | None = None,
        clock: Callable[[], datetime] = utcnow,
        app_name: str | None = None,
    ) -> None:
        self._store = store
        self._sender = sender
        self._namespace = namespace
        self._purpose = purpose
        if ttl is None:
            ttl = timedelta(minutes=settings.otp_ttl_minutes)
        if max_attempts is None:
            max_attempts = settings.otp_max_attempts
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._ttl = ttl
        self._max_attempts = max_attempts
        self._dispatch_timeout = (
            dispatch_timeout
            if dispatch_timeout is not None
            else settings.otp_dispatch_timeout_seconds
        )
        self._clock = clock
        self._app_name = app_name or settings.app_name
        self._sweeper: asyncio.Task | None = None

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def ttl_minutes(self) -> int:
        """TTL in whole minutes, rounded up for the delivery message."""
        return math.ceil(self._ttl.total_seconds() / 60)

    # ── Issue ────────────────────────────────────────────

    async def issue(
        self, subject_id: str, destination: str, display_name: str = ""
    ) -> bool:
        """Create a fresh challenge for *subject_id* and email its code.

        Any pending challenge for the same subject is replaced.  Returns
        ``True`` only when the sender reports success.
        """
        key = make_key(self._namespace, subject_id)
        now = self._clock()
        self._store.sweep_expired(now)

        challenge = Challenge(
            subject_id=subject_id,
            destination=destination,
            code=generate_code(),
            issued_at=now,
            expires_at=now + self._ttl,
            max_attempts=self._max_attempts,
        )
        self._store.put(key, challenge)

        message = format_challenge_message(
            challenge.code,
            self.ttl_minutes,
            self._max_attempts,
            display_name=display_name,
            purpose=self._purpose,
            app_name=self._app_name,
        )

        try:
            sent = await asyncio.wait_for(
                self._sender.send(destination, message.subject, message.html, message.text),
                timeout=self._dispatch_timeout,
            )
        except TimeoutError:
            logger.error(
                "Timed out after %.1fs sending %s code to %s for subject %s",
                self._dispatch_timeout,
                self._namespace,
                destination,
                subject_id,
            )
            return False
        except Exception:
            logger.exception(
                "Error sending %s code to %s for subject %s",
                self._namespace,
                destination,
                subject_id,
            )
            return False

        if sent is not True:
            logger.error(
                "Failed to send %s code to %s for subject %s",
                self._namespace,
                destination,
                subject_id,
            )
            return False

        logger.info("%s code sent to %s for subject %s", self._namespace, destination, subject_id)
        return True

    # ── Verify ───────────────────────────────────────────

    def verify(self, subject_id: str, submitted_code: str) -> VerifyResult:
        """Check *submitted_code* against the subject's pending challenge.

        Precedence: missing → expired → already exhausted → consume one
        attempt and compare.  The whole sequence runs under the store
        lock, so concurrent calls for one subject are serialized.
        """
        key = make_key(self._namespace, subject_id)

        with self._store.transaction() as store:
            challenge = store.get(key)
            if challenge is None:
                return self._result(VerifyOutcome.NO_ACTIVE_CHALLENGE)

            status = status_of(challenge, self._clock())
            if status is ChallengeStatus.EXPIRED:
                store.delete(key)
                logger.info("%s challenge expired for subject %s", self._namespace, subject_id)
                return self._result(VerifyOutcome.EXPIRED)
            if status is ChallengeStatus.EXHAUSTED:
                store.delete(key)
                return self._result(VerifyOutcome.ATTEMPTS_EXHAUSTED, 0)

            challenge.attempts += 1

            if hmac.compare_digest(challenge.code.encode(), submitted_code.encode()):
                store.delete(key)
                logger.info(
                    "%s verification successful for subject %s", self._namespace, subject_id
                )
                return self._result(VerifyOutcome.VERIFIED)

            remaining = challenge.remaining_attempts
            if remaining == 0:
                store.delete(key)
                logger.warning(
                    "%s attempts exhausted for subject %s", self._namespace, subject_id
                )
                return self._result(VerifyOutcome.ATTEMPTS_EXHAUSTED, 0)

        logger.info(
            "Invalid %s code for subject %s (%d attempts remaining)",
            self._namespace,
            subject_id,
            remaining,
        )
        return self._result(VerifyOutcome.INVALID_CODE, remaining)

    # ── Queries / invalidation ───────────────────────────

    def has_active_challenge(self, subject_id: str) -> bool:
        """Return ``True`` if a non-expired challenge exists, dropping a stale one."""
        key = make_key(self._namespace, subject_id)
        with self._store.transaction() as store:
            challenge = store.get(key)
            if challenge is None:
                return False
            if status_of(challenge, self._clock()) is ChallengeStatus.EXPIRED:
                store.delete(key)
                return False
            return True

    def remaining_attempts(self, subject_id: str) -> int:
        challenge = self._store.get(make_key(self._namespace, subject_id))
        if challenge is None or self._clock() > challenge.expires_at:
            return 0
        return challenge.remaining_attempts

    def invalidate(self, subject_id: str) -> None:
        """Drop the subject's challenge (e.g. on logout); safe to repeat."""
        self._store.delete(make_key(self._namespace, subject_id))
        logger.info("%s challenge cleared for subject %s", self._namespace, subject_id)

    def sweep_expired(self) -> int:
        return self._store.sweep_expired(self._clock())

    # ── Periodic sweep ───────────────────────────────────

    def start_sweeper(self, interval: float) -> None:
        """Run :meth:`sweep_expired` every *interval* seconds on the event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_forever(interval))
        logger.info("Challenge sweeper started (every %.0fs)", interval)

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        logger.info("Challenge sweeper stopped")

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep_expired()

    def _result(
        self, outcome: VerifyOutcome, remaining: int | None = None
    ) -> VerifyResult:
        return VerifyResult(
            outcome=outcome,
            remaining_attempts=remaining,
            label=_LABELS[self._purpose],
        )
