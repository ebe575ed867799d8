"""Centralized configuration management for CreditDesk."""

# Load the service .env before Config reads os.getenv()
from pathlib import Path
from dotenv import load_dotenv
import os

ENV_PATH = Path(__file__).resolve().parent / ".env"
if ENV_PATH.exists():
    try:
        load_dotenv(dotenv_path=ENV_PATH, override=False, encoding="utf-8")
    except UnicodeDecodeError as e:
        raise RuntimeError(
            f"Failed to load {ENV_PATH}: Invalid encoding (not UTF-8). "
            f"Recreate the file with UTF-8 encoding. Error: {e}"
        ) from e

from typing import Optional, List

DEFAULT_STRIPE_API_VERSION = "2024-06-20"
DEFAULT_SESSION_SECRET = "change-me-session-secret"


class Config:
    """CreditDesk configuration.

    Reads environment variables at instance creation time to ensure .env is loaded first.
    """

    def __init__(self):
        # =========================
        # Environment
        # =========================
        self._ENVIRONMENT = os.getenv("ENVIRONMENT") or os.getenv("CREDITDESK_ENV") or "development"

        # =========================
        # Stripe
        # =========================
        self._STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY") or None
        self._STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET") or None
        self._STRIPE_API_VERSION = os.getenv("STRIPE_API_VERSION", DEFAULT_STRIPE_API_VERSION)
        self._MAX_CREDITS_PER_TRANSACTION = int(os.getenv("CREDITDESK_MAX_CREDITS_PER_TRANSACTION", "100000"))

        # =========================
        # Public URLs
        # =========================
        base_url = os.getenv("CREDITDESK_BASE_URL") or os.getenv("NEXTAUTH_URL") or "http://localhost:3000"
        self._APP_BASE_URL = base_url.rstrip("/")

        # =========================
        # Sessions
        # =========================
        self._SESSION_SECRET = os.getenv("CREDITDESK_SESSION_SECRET", DEFAULT_SESSION_SECRET)
        self._SESSION_COOKIE_NAME = os.getenv("CREDITDESK_SESSION_COOKIE", "creditdesk_session")

        # =========================
        # Storage
        # =========================
        self._DATABASE_PATH = Path(os.getenv("CREDITDESK_DATABASE_PATH", "creditdesk.db"))
        self._EMAIL_SANDBOX_DIR = Path(os.getenv("CREDITDESK_EMAIL_SANDBOX_DIR", "sandbox/emails"))

        # =========================
        # Logging
        # =========================
        self._LOG_LEVEL = os.getenv("CREDITDESK_LOG_LEVEL", "INFO").upper()
        self._JSON_LOGGING = os.getenv("CREDITDESK_JSON_LOGGING", "false").lower() == "true"

        # =========================
        # Monitoring
        # =========================
        self._METRICS_ENABLED = os.getenv("CREDITDESK_METRICS_ENABLED", "true").lower() == "true"

        # =========================
        # CORS / Server
        # =========================
        cors_origins_str = os.getenv("CREDITDESK_CORS_ORIGINS", "*")
        self._CORS_ORIGINS = [o.strip() for o in cors_origins_str.split(",") if o.strip()]
        self._HOST = os.getenv("CREDITDESK_HOST", "0.0.0.0")
        self._PORT = int(os.getenv("CREDITDESK_PORT", "8000"))

    # ===== Properties =====
    @property
    def ENVIRONMENT(self) -> str:
        return self._ENVIRONMENT

    @property
    def STRIPE_SECRET_KEY(self) -> Optional[str]:
        return self._STRIPE_SECRET_KEY

    @property
    def STRIPE_WEBHOOK_SECRET(self) -> Optional[str]:
        return self._STRIPE_WEBHOOK_SECRET

    @property
    def STRIPE_API_VERSION(self) -> str:
        return self._STRIPE_API_VERSION

    @property
    def MAX_CREDITS_PER_TRANSACTION(self) -> int:
        return self._MAX_CREDITS_PER_TRANSACTION

    @property
    def APP_BASE_URL(self) -> str:
        return self._APP_BASE_URL

    @property
    def SESSION_SECRET(self) -> str:
        return self._SESSION_SECRET

    @property
    def SESSION_COOKIE_NAME(self) -> str:
        return self._SESSION_COOKIE_NAME

    @property
    def DATABASE_PATH(self) -> Path:
        return self._DATABASE_PATH

    @property
    def EMAIL_SANDBOX_DIR(self) -> Path:
        return self._EMAIL_SANDBOX_DIR

    @property
    def LOG_LEVEL(self) -> str:
        return self._LOG_LEVEL

    @property
    def JSON_LOGGING(self) -> bool:
        return self._JSON_LOGGING

    @property
    def METRICS_ENABLED(self) -> bool:
        return self._METRICS_ENABLED

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return self._CORS_ORIGINS

    @property
    def HOST(self) -> str:
        return self._HOST

    @property
    def PORT(self) -> int:
        return self._PORT

    @classmethod
    def validate(cls) -> List[str]:
        warnings = []
        instance = cls()

        if not instance.STRIPE_SECRET_KEY:
            warnings.append("STRIPE_SECRET_KEY not set - checkout will fail until it is configured")

        if not instance.STRIPE_WEBHOOK_SECRET:
            warnings.append("STRIPE_WEBHOOK_SECRET not set - webhook events will be rejected")

        if instance.SESSION_SECRET == DEFAULT_SESSION_SECRET:
            warnings.append("Using default session secret! Change CREDITDESK_SESSION_SECRET in production")

        if "*" in instance.CORS_ORIGINS:
            warnings.append(
                "CORS allows all origins (*). Set CREDITDESK_CORS_ORIGINS to specific origins "
                "(e.g., http://localhost:3000)"
            )

        return warnings

    @classmethod
    def is_production(cls) -> bool:
        return cls()._ENVIRONMENT == "production"


# Global config instance (created AFTER .env is loaded)
config = Config()
