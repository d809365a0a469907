"""LeadsFlow OTP engine — configuration loaded from environment."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./leadflow_otp.db"

    # ── OTP challenges ────────────────────────────────────
    otp_ttl_minutes: int = 10
    otp_max_attempts: int = 3
    otp_dispatch_timeout_seconds: float = 10.0
    otp_sweep_interval_seconds: float = 60.0  # 0 disables the periodic sweep

    # ── Email delivery ────────────────────────────────────
    email_backend: str = "console"  # "smtp" | "sendgrid" | "console"
    email_from: str = "notifications@leadflow.com"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    sendgrid_api_key: str = ""
    sendgrid_api_url: str = "https://api.sendgrid.com/v3/mail/send"

    # ── App ───────────────────────────────────────────────
    app_name: str = "LeadsFlow"
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton settings instance
settings = Settings()
