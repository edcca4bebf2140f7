"""
Configuration management.
Loads from config_local.py (gitignored) for secrets, with defaults.
"""
import os
from typing import Optional

# Try to import local config (gitignored)
try:
    from teamsync.config_local import (
        DATABASE_DSN,
        SESSION_COOKIE_NAME,
        SESSION_SECRET,
        SESSION_MAX_AGE_HOURS,
        SMTP_HOST,
        SMTP_PORT,
        SMTP_USE_TLS,
        SMTP_USE_SSL,
        SMTP_USERNAME,
        SMTP_PASSWORD,
        SMTP_FROM_EMAIL,
        SMTP_FROM_NAME,
        FRONTEND_BASE_URL,
        CORS_ORIGINS,
    )
    # Tier defaults and batch limits are optional in config_local
    try:
        from teamsync.config_local import DEFAULT_TIER_NAME, BULK_INVITE_MAX_BATCH
    except ImportError:
        DEFAULT_TIER_NAME = "free"
        BULK_INVITE_MAX_BATCH = 50
except ImportError:
    # Fallback defaults (database DSN may also come from the environment)
    DATABASE_DSN: Optional[str] = os.environ.get("TEAMSYNC_DATABASE_DSN")
    SESSION_COOKIE_NAME: str = "teamsync_session"
    SESSION_SECRET: Optional[str] = os.environ.get("TEAMSYNC_SESSION_SECRET")
    SESSION_MAX_AGE_HOURS: int = 24
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USE_TLS: bool = False
    SMTP_USE_SSL: bool = True
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: Optional[str] = None
    SMTP_FROM_NAME: str = "TeamSync"
    FRONTEND_BASE_URL: str = "http://localhost:3000"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    DEFAULT_TIER_NAME: str = "free"
    BULK_INVITE_MAX_BATCH: int = 50  # Upper bound on invites per bulk request


def get_settings():
    """Return settings object (for FastAPI dependency injection if needed)."""
    return type("Settings", (), {
        "database_dsn": DATABASE_DSN,
        "session_cookie_name": SESSION_COOKIE_NAME,
        "session_secret": SESSION_SECRET,
        "session_max_age_hours": SESSION_MAX_AGE_HOURS,
        "smtp_host": SMTP_HOST,
        "smtp_port": SMTP_PORT,
        "smtp_use_tls": SMTP_USE_TLS,
        "smtp_use_ssl": SMTP_USE_SSL,
        "smtp_username": SMTP_USERNAME,
        "smtp_password": SMTP_PASSWORD,
        "smtp_from_email": SMTP_FROM_EMAIL,
        "smtp_from_name": SMTP_FROM_NAME,
        "frontend_base_url": FRONTEND_BASE_URL,
        "cors_origins": CORS_ORIGINS,
        "default_tier_name": DEFAULT_TIER_NAME,
        "bulk_invite_max_batch": BULK_INVITE_MAX_BATCH,
    })()
