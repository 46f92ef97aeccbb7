"""
Logging utilities for PayPal Checkout.

Session tokens, nonces and authorizations must never reach logs in clear
text. ``mask_sensitive_data`` handles structured ``extra`` payloads and
``SessionContextFilter`` stamps every record with the active session id.

Usage:
    from paypal_checkout.logging import setup_logging, mask_value

    setup_logging(level="DEBUG", json_format=False)
    logger.info("Opened session %s", mask_value(session_id))
"""
from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, Sequence

if TYPE_CHECKING:
    from paypal_checkout.config import CheckoutSettings

MASK_PATTERN = "***"

SENSITIVE_FIELDS: frozenset[str] = frozenset({
    "authorization",
    "nonce",
    "token",
    "billing_token",
    "payment_token",
    "client_token",
    "vault_initiated_checkout_payment_method_token",
    "access_token",
    "secret",
})

session_id_var: ContextVar[Optional[str]] = ContextVar("paypal_session_id", default=None)


def mask_value(value: Optional[str], show_chars: int = 4) -> str:
    """Mask a sensitive value, showing only its first/last characters."""
    if not value or len(value) <= show_chars * 2:
        return MASK_PATTERN
    return f"{value[:show_chars]}...{value[-show_chars:]}"


def is_sensitive_key(key: str) -> bool:
    key_lower = key.lower().replace("-", "_")
    return key_lower in SENSITIVE_FIELDS or any(
        sensitive in key_lower for sensitive in ("token", "nonce", "secret", "authorization")
    )


def mask_sensitive_data(
    data: Any,
    additional_fields: Optional[Sequence[str]] = None,
    _depth: int = 0,
    _max_depth: int = 10,
) -> Any:
    """Recursively mask sensitive data in a data structure.

    Args:
        data: The data structure to mask (dict, list, or scalar)
        additional_fields: Additional field names to mask

    Returns:
        Copy of data with sensitive values masked
    """
    if _depth > _max_depth:
        return data

    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            if is_sensitive_key(str(key)) or (additional_fields and key in additional_fields):
                result[key] = MASK_PATTERN
            else:
                result[key] = mask_sensitive_data(value, additional_fields, _depth + 1, _max_depth)
        return result

    if isinstance(data, (list, tuple)):
        return type(data)(
            mask_sensitive_data(item, additional_fields, _depth + 1, _max_depth)
            for item in data
        )

    return data


class SessionContextFilter(logging.Filter):
    """Adds the active (masked) session id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        session_id = session_id_var.get()
        record.session_id = mask_value(session_id) if session_id else None
        return True


_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "session_id"}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "session_id", None):
            log_data["session_id"] = record.session_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra:
            log_data.update(mask_sensitive_data(extra))

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Configure the ``paypal_checkout`` logger hierarchy.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON structured logging (True) or simple format (False)
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SessionContextFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(session_id)s] %(message)s")
        )

    package_logger = logging.getLogger("paypal_checkout")
    package_logger.handlers = [handler]
    package_logger.setLevel(level.upper())
    package_logger.propagate = False


def configure_logging(settings: "CheckoutSettings") -> None:
    """Apply ``log_level`` and ``log_json`` from settings."""
    setup_logging(level=settings.log_level, json_format=settings.log_json)
