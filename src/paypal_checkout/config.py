"""Checkout configuration."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from paypal_checkout.models import Intent

GATEWAY_URLS = {
    "sandbox": "https://api.sandbox.braintreegateway.com/merchants",
    "production": "https://api.braintreegateway.com/merchants",
}


class CheckoutSettings(BaseSettings):
    """PayPal Checkout configuration, read from ``PAYPAL_CHECKOUT_*`` variables."""

    environment: Literal["sandbox", "production"] = "sandbox"

    # Gateway; empty means "derive from environment"
    gateway_url: str = ""
    request_timeout_seconds: float = 30.0

    # Hosted SDK
    sdk_url: str = "https://www.paypal.com/sdk/js"

    # Session behaviour
    default_intent: Intent = Intent.AUTHORIZE
    approval_timeout_seconds: Optional[float] = None

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        env_prefix = "PAYPAL_CHECKOUT_"
        env_file = ".env"
        extra = "ignore"

    @field_validator("gateway_url")
    @classmethod
    def strip_gateway_url(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def resolved_gateway_url(self) -> str:
        return self.gateway_url or GATEWAY_URLS[self.environment]


@lru_cache
def load_settings(env_file: str | None = None) -> CheckoutSettings:
    """Load CheckoutSettings once per process."""
    env_path = Path(env_file) if env_file else None
    return CheckoutSettings(_env_file=env_path)
