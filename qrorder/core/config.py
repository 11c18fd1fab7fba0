"""Configuration management for the QR order service."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _to_bool(value: str, *, default: bool = False) -> bool:
    lowered = value.strip().lower()
    if not lowered:
        return default
    return lowered in {"true", "1", "yes", "y", "on"}


class Settings:
    PROJECT_NAME: str = os.getenv("QRORDER_PROJECT_NAME", "QR Order Service")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development").strip().lower()
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./qrorder.db")

    PAYMENT_GATEWAY_BASE_URL: str = os.getenv(
        "PAYMENT_GATEWAY_BASE_URL",
        "https://api.tosspayments.com/v1/payments",
    )
    PAYMENT_GATEWAY_SECRET_KEY: str = os.getenv("PAYMENT_GATEWAY_SECRET_KEY", "")
    PAYMENT_GATEWAY_CLIENT_KEY: str = os.getenv("PAYMENT_GATEWAY_CLIENT_KEY", "")
    PAYMENT_GATEWAY_TIMEOUT: float = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", "10"))
    PAYMENT_CONFIRM_MAX_ATTEMPTS: int = int(os.getenv("PAYMENT_CONFIRM_MAX_ATTEMPTS", "3"))
    PAYMENT_CONFIRM_BACKOFF_SECONDS: float = float(
        os.getenv("PAYMENT_CONFIRM_BACKOFF_SECONDS", "1.0")
    )
    # Synthesizes a successful confirmation when the sandbox provider answers
    # PROVIDER_ERROR. Never honoured in production, see ``sandbox_enabled``.
    PAYMENT_SANDBOX_MODE: bool = _to_bool(
        os.getenv("PAYMENT_SANDBOX_MODE", "false"), default=False
    )
    CURRENCY: str = os.getenv("PAYMENT_CURRENCY", "KRW")

    REALTIME_PUSH_URL: str = os.getenv("REALTIME_PUSH_URL", "")
    REALTIME_PUSH_TIMEOUT: float = float(os.getenv("REALTIME_PUSH_TIMEOUT", "5"))

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def sandbox_enabled(self) -> bool:
        return self.PAYMENT_SANDBOX_MODE and not self.is_production


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


__all__ = ["settings", "Settings", "get_settings"]
