"""Tests for log masking and formatting."""
from __future__ import annotations

import json
import logging

from paypal_checkout.config import CheckoutSettings
from paypal_checkout.logging import (
    MASK_PATTERN,
    SessionContextFilter,
    StructuredFormatter,
    configure_logging,
    mask_sensitive_data,
    mask_value,
    session_id_var,
    setup_logging,
)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("paypal_checkout.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestMasking:
    def test_mask_value(self):
        assert mask_value("EC-1234567890ABCDEF") == "EC-1...CDEF"
        assert mask_value("short") == MASK_PATTERN
        assert mask_value(None) == MASK_PATTERN

    def test_nested(self):
        data = {
            "nonce": "fake-paypal-nonce-1",
            "payer": {"email": "buyer@example.com", "billingToken": "BA-1"},
            "accounts": [{"paymentToken": "EC-1", "amount": "10.00"}],
        }

        masked = mask_sensitive_data(data)

        assert masked["nonce"] == MASK_PATTERN
        assert masked["payer"] == {"email": "buyer@example.com", "billingToken": MASK_PATTERN}
        assert masked["accounts"] == [{"paymentToken": MASK_PATTERN, "amount": "10.00"}]
        # original untouched
        assert data["nonce"] == "fake-paypal-nonce-1"

    def test_additional_fields(self):
        masked = mask_sensitive_data({"email": "buyer@example.com"}, additional_fields=["email"])

        assert masked == {"email": MASK_PATTERN}


class TestFormatting:
    def test_structured(self):
        record = make_record(authorization="sandbox_abc_merchant", flow="checkout")

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["authorization"] == MASK_PATTERN
        assert data["flow"] == "checkout"

    def test_session_filter(self):
        token = session_id_var.set("EC-1234567890ABCDEF")
        try:
            record = make_record()
            SessionContextFilter().filter(record)
        finally:
            session_id_var.reset(token)

        assert record.session_id == "EC-1...CDEF"

    def test_setup_logging(self):
        package_logger = logging.getLogger("paypal_checkout")
        saved = (package_logger.handlers, package_logger.level, package_logger.propagate)
        try:
            setup_logging(level="debug", json_format=False)

            assert package_logger.level == logging.DEBUG
            assert len(package_logger.handlers) == 1
            assert package_logger.propagate is False
        finally:
            package_logger.handlers, level, package_logger.propagate = saved
            package_logger.setLevel(level)

    def test_configure_from_settings(self):
        package_logger = logging.getLogger("paypal_checkout")
        saved = (package_logger.handlers, package_logger.level, package_logger.propagate)
        settings = CheckoutSettings(_env_file=None, log_level="warning", log_json=True)
        try:
            configure_logging(settings)

            assert package_logger.level == logging.WARNING
            assert isinstance(package_logger.handlers[0].formatter, StructuredFormatter)
        finally:
            package_logger.handlers, level, package_logger.propagate = saved
            package_logger.setLevel(level)
