"""Numeric one-time code generation."""

from __future__ import annotations

import hmac
import secrets

CODE_MIN = 100_000
CODE_MAX = 999_999

BACKUP_CODE_MIN = 10_000_000
BACKUP_CODE_MAX = 99_999_999
BACKUP_CODE_COUNT = 8


def generate_code() -> str:
    """Return a 6-digit code drawn from ``[100000, 999999]`` via :mod:`secrets`."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> list[str]:
    """Return *count* 8-digit account-recovery codes."""
    span = BACKUP_CODE_MAX - BACKUP_CODE_MIN + 1
    return [str(BACKUP_CODE_MIN + secrets.randbelow(span)) for _ in range(count)]


def verify_backup_code(provided: str, stored_codes: list[str]) -> bool:
    """Return ``True`` if *provided* equals one of *stored_codes*.

    Every stored code is compared so the running time does not reveal
    which position matched.
    """
    matched = False
    for stored in stored_codes:
        if hmac.compare_digest(provided.encode(), stored.encode()):
            matched = True
    return matched
