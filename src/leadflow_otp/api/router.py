"""OTP API router — login 2FA and password-reset code endpoints.

Endpoints
---------
POST /api/auth/2fa/send-otp            → issue a login code
POST /api/auth/2fa/verify-otp          → verify a login code
GET  /api/auth/2fa/status/{user_id}    → pending-challenge status
POST /api/auth/2fa/cancel              → drop a pending login code
POST /api/auth/forgot-password         → issue a password-reset code
POST /api/auth/verify-otp              → verify a password-reset code
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow_otp.database.engine import get_session
from leadflow_otp.database.repository import UserRepository
from leadflow_otp.otp.challenge import VerifyOutcome, VerifyResult
from leadflow_otp.otp.formatter import ChallengePurpose
from leadflow_otp.otp.manager import ChallengeManager
from leadflow_otp.otp.store import RESET_NAMESPACE, ChallengeStore
from leadflow_otp.services.email_service import build_sender

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["otp"])

# ── Shared instances (created once, reused across requests) ──
challenge_store = ChallengeStore()
_sender = build_sender()
login_challenges = ChallengeManager(challenge_store, _sender)
reset_challenges = ChallengeManager(
    challenge_store,
    _sender,
    namespace=RESET_NAMESPACE,
    purpose=ChallengePurpose.PASSWORD_RESET,
)


def get_login_manager() -> ChallengeManager:
    return login_challenges


def get_reset_manager() -> ChallengeManager:
    return reset_challenges


# ── Request / response models ────────────────────────────

class EmailRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=256)


class OTPVerifyRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=256)
    otp: str = Field(..., pattern=r"^\d{6}$")


class SendResponse(BaseModel):
    success: bool
    message: str


class UserInfo(BaseModel):
    id: str
    name: str
    email: str


class VerifyResponse(BaseModel):
    success: bool
    message: str
    user: UserInfo | None = None


class StatusResponse(BaseModel):
    active: bool
    remainingAttempts: int


def _failure_response(result: VerifyResult) -> JSONResponse:
    content: dict = {"error": result.message, "outcome": result.outcome.value}
    if result.remaining_attempts is not None:
        content["remainingAttempts"] = result.remaining_attempts
    return JSONResponse(status_code=400, content=content)


# ── Login two-factor ─────────────────────────────────────

@router.post("/2fa/send-otp", response_model=SendResponse)
async def send_login_otp(
    body: EmailRequest,
    session: AsyncSession = Depends(get_session),
    manager: ChallengeManager = Depends(get_login_manager),
):
    """Email a fresh login code, replacing any pending one."""
    user = await UserRepository(session).find_by_email(body.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.two_factor_enabled:
        raise HTTPException(
            status_code=400,
            detail="Two-factor authentication is not enabled for this account.",
        )

    sent = await manager.issue(user.id, user.email, user.name)
    if not sent:
        raise HTTPException(
            status_code=502,
            detail="Failed to send verification code. Please try again.",
        )
    return SendResponse(success=True, message="Verification code sent to your email.")


@router.post("/2fa/verify-otp", response_model=VerifyResponse)
async def verify_login_otp(
    body: OTPVerifyRequest,
    session: AsyncSession = Depends(get_session),
    manager: ChallengeManager = Depends(get_login_manager),
):
    user = await UserRepository(session).find_by_email(body.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    result = manager.verify(user.id, body.otp)
    if not result.success:
        return _failure_response(result)

    return VerifyResponse(
        success=True,
        message=result.message,
        user=UserInfo(id=user.id, name=user.name, email=user.email),
    )


@router.get("/2fa/status/{user_id}", response_model=StatusResponse)
async def login_otp_status(
    user_id: str,
    session: AsyncSession = Depends(get_session),
    manager: ChallengeManager = Depends(get_login_manager),
):
    if not await UserRepository(session).find_by_id(user_id):
        raise HTTPException(status_code=404, detail="User not found")

    active = manager.has_active_challenge(user_id)
    return StatusResponse(
        active=active,
        remainingAttempts=manager.remaining_attempts(user_id) if active else 0,
    )


@router.post("/2fa/cancel", response_model=SendResponse)
async def cancel_login_otp(
    body: EmailRequest,
    session: AsyncSession = Depends(get_session),
    manager: ChallengeManager = Depends(get_login_manager),
):
    """Drop any pending login code for the user (logout / cancel)."""
    user = await UserRepository(session).find_by_email(body.email)
    if user:
        manager.invalidate(user.id)
    return SendResponse(success=True, message="Verification cancelled.")


# ── Password reset ───────────────────────────────────────

@router.post("/forgot-password", response_model=SendResponse)
async def forgot_password(
    body: EmailRequest,
    session: AsyncSession = Depends(get_session),
    manager: ChallengeManager = Depends(get_reset_manager),
):
    """Email a password-reset code.

    Unknown addresses and failed deliveries get the same reply as a
    successful send, so the endpoint cannot be used to discover accounts.
    """
    generic = SendResponse(
        success=True,
        message="If an account exists for that email, a reset code has been sent.",
    )
    user = await UserRepository(session).find_by_email(body.email)
    if not user:
        logger.info("Password reset requested for unknown email")
        return generic

    sent = await manager.issue(user.id, user.email, user.name)
    if not sent:
        logger.error("Password reset code for user %s could not be sent", user.id)
    return generic


@router.post("/verify-otp", response_model=VerifyResponse)
async def verify_reset_otp(
    body: OTPVerifyRequest,
    session: AsyncSession = Depends(get_session),
    manager: ChallengeManager = Depends(get_reset_manager),
):
    user = await UserRepository(session).find_by_email(body.email)
    if not user:
        return _failure_response(VerifyResult(VerifyOutcome.NO_ACTIVE_CHALLENGE, label="reset"))

    result = manager.verify(user.id, body.otp)
    if not result.success:
        return _failure_response(result)
    return VerifyResponse(success=True, message=result.message)
