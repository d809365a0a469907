"""In-memory challenge store keyed by namespace + subject."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from leadflow_otp.otp.challenge import Challenge

logger = logging.getLogger(__name__)

# ── Key namespaces ───────────────────────────────────────
LOGIN_NAMESPACE = "2fa"
RESET_NAMESPACE = "reset"


def make_key(namespace: str, subject_id: str) -> str:
    """Build the store key for *subject_id*, e.g. ``2fa_42``."""
    if not subject_id:
        raise ValueError("subject_id must be a non-empty string")
    return f"{namespace}_{subject_id}"


class ChallengeStore:
    """Process-local table of pending challenges.

    Every operation takes a single re-entrant lock, and
    :meth:`transaction` exposes the same lock so a caller can run a
    read-modify-write sequence atomically.  Nothing is persisted: a
    restart forgets every pending challenge.
    """

    def __init__(self) -> None:
        self._challenges: dict[str, Challenge] = {}
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[ChallengeStore]:
        """Hold the store lock for the duration of the ``with`` block."""
        with self._lock:
            yield self

    def put(self, key: str, challenge: Challenge) -> None:
        """Store *challenge* under *key*, replacing any previous entry."""
        with self._lock:
            self._challenges[key] = challenge

    def get(self, key: str) -> Challenge | None:
        with self._lock:
            return self._challenges.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._challenges.pop(key, None)

    def sweep_expired(self, now: datetime) -> int:
        """Remove every challenge whose expiry lies before *now*.

        Returns the number of entries removed.
        """
        with self._lock:
            stale = [
                key
                for key, challenge in self._challenges.items()
                if challenge.expires_at < now
            ]
            for key in stale:
                del self._challenges[key]
        if stale:
            logger.debug("Swept %d expired challenge(s)", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)
