"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from leadflow_otp.api.router import challenge_store, login_challenges
from leadflow_otp.api.router import router as otp_router
from leadflow_otp.config import settings
from leadflow_otp.database.engine import init_db

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    logger.info("Starting %s OTP service …", settings.app_name)
    await init_db()
    logger.info("Database initialised")
    # One sweeper covers every namespace since the store is shared.
    if settings.otp_sweep_interval_seconds > 0:
        login_challenges.start_sweeper(settings.otp_sweep_interval_seconds)
    yield
    await login_challenges.stop_sweeper()
    logger.info("Shutting down %s OTP service …", settings.app_name)


app = FastAPI(
    title=f"{settings.app_name} OTP",
    description="One-time passcode challenges for login 2FA and password reset",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(otp_router)


@app.get("/health")
async def health_check():
    """Simple liveness probe."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "pendingChallenges": len(challenge_store),
    }
