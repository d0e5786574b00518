"""
Runtime configuration.
Everything comes from environment variables (optionally a .env file).
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


CLIENT_MODE_REFERENCE = "reference"
CLIENT_MODE_EMBEDDED = "embedded"

DEADLINE_UNIT_DATE = "date"
DEADLINE_UNIT_DATETIME = "datetime"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Deployment settings. Fixed for the lifetime of the process."""
    app_env: str
    client_mode: str
    deadline_unit: str
    free_tier_limit: int
    frontend_base_url: str
    repository_backend: str

    stripe_secret_key: Optional[str]
    stripe_webhook_secret: Optional[str]
    stripe_success_url: str
    stripe_cancel_url: str
    billing_fetch_timeout_seconds: float

    smtp_host: str
    smtp_port: int
    smtp_username: Optional[str]
    smtp_password: Optional[str]
    smtp_use_tls: bool
    from_email: str
    from_name: str

    log_level: str

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables with defaults."""
        client_mode = os.environ.get("CLIENT_MODE", CLIENT_MODE_REFERENCE).lower()
        if client_mode not in (CLIENT_MODE_REFERENCE, CLIENT_MODE_EMBEDDED):
            raise ValueError(
                f"CLIENT_MODE must be '{CLIENT_MODE_REFERENCE}' or '{CLIENT_MODE_EMBEDDED}'"
            )

        deadline_unit = os.environ.get("DEADLINE_UNIT", DEADLINE_UNIT_DATE).lower()
        if deadline_unit not in (DEADLINE_UNIT_DATE, DEADLINE_UNIT_DATETIME):
            raise ValueError(
                f"DEADLINE_UNIT must be '{DEADLINE_UNIT_DATE}' or '{DEADLINE_UNIT_DATETIME}'"
            )

        frontend_base_url = os.environ.get("FRONTEND_BASE_URL", "http://localhost:3000").rstrip("/")

        return cls(
            app_env=os.environ.get("APP_ENV", "production"),
            client_mode=client_mode,
            deadline_unit=deadline_unit,
            free_tier_limit=int(os.environ.get("FREE_TIER_LIMIT", "1")),
            frontend_base_url=frontend_base_url,
            repository_backend=os.environ.get("REPOSITORY_BACKEND", "postgres").lower(),
            stripe_secret_key=os.environ.get("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET"),
            stripe_success_url=os.environ.get(
                "STRIPE_SUCCESS_URL", f"{frontend_base_url}/subscription/success"
            ),
            stripe_cancel_url=os.environ.get(
                "STRIPE_CANCEL_URL", f"{frontend_base_url}/subscription/cancel"
            ),
            billing_fetch_timeout_seconds=float(
                os.environ.get("BILLING_FETCH_TIMEOUT_SECONDS", "10")
            ),
            smtp_host=os.environ.get("SMTP_HOST", "localhost"),
            smtp_port=int(os.environ.get("SMTP_PORT", "587")),
            smtp_username=os.environ.get("SMTP_USERNAME"),
            smtp_password=os.environ.get("SMTP_PASSWORD"),
            smtp_use_tls=_env_bool("SMTP_USE_TLS", True),
            from_email=os.environ.get("NOTIFICATION_FROM_EMAIL", "no-reply@brief-mate.com"),
            from_name=os.environ.get("NOTIFICATION_FROM_NAME", "BriefMate"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def uses_client_registry(self) -> bool:
        return self.client_mode == CLIENT_MODE_REFERENCE


@lru_cache()
def get_settings() -> Settings:
    """Settings for this process, read once."""
    load_dotenv()
    return Settings.from_env()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Set up root logging once at application start-up."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
