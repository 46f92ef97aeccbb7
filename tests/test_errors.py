"""Tests for the error hierarchy."""
from __future__ import annotations

import pytest

from paypal_checkout.errors import (
    CheckoutError,
    ConflictingFlowFields,
    GatewayError,
    MissingRequiredField,
    PopupClosed,
    SessionTornDown,
    ShippingOptionConflict,
    UnknownShippingOption,
    ValidationError,
)


class TestCheckoutError:
    def test_str_includes_code(self):
        error = CheckoutError("Something broke")

        assert str(error) == "[PAYPAL_CHECKOUT_ERROR] Something broke"

    def test_code_override(self):
        error = MissingRequiredField("amount is required", field="amount", code="CUSTOM_CODE")

        assert error.code == "CUSTOM_CODE"
        # class default is untouched
        assert MissingRequiredField.code == "PAYPAL_MISSING_REQUIRED_OPTION"

    def test_to_dict(self):
        error = GatewayError("Service unavailable", status_code=503)

        assert error.to_dict() == {
            "error": {
                "code": "PAYPAL_FLOW_FAILED",
                "message": "Service unavailable",
                "details": {"status_code": 503},
            }
        }


class TestHierarchy:
    @pytest.mark.parametrize(
        "error_class",
        [MissingRequiredField, ConflictingFlowFields, ShippingOptionConflict],
    )
    def test_validation_errors(self, error_class):
        assert issubclass(error_class, ValidationError)
        assert issubclass(error_class, CheckoutError)

    def test_popup_closed_is_not_gateway_error(self):
        assert not issubclass(PopupClosed, GatewayError)
        assert PopupClosed().code == "PAYPAL_POPUP_CLOSED"

    def test_teardown_code(self):
        assert SessionTornDown("gone").code == "METHOD_CALLED_AFTER_TEARDOWN"


class TestDetails:
    def test_conflicting_fields(self):
        error = ConflictingFlowFields("bad", fields=["amount", "currency"], flow="vault")

        assert error.fields == ["amount", "currency"]
        assert error.details == {"fields": ["amount", "currency"], "flow": "vault"}

    def test_conflicting_fields_code(self):
        """Flow conflicts have their own code but are still validation errors."""
        error = ConflictingFlowFields("bad", fields=["amount"], flow="vault")

        assert error.code == "PAYPAL_CONFLICTING_FLOW_FIELDS"
        assert error.code != ValidationError("bad amount", field="amount").code
        assert isinstance(error, ValidationError)

    def test_validation_field(self):
        error = ValidationError("bad currency", field="currency")

        assert error.field == "currency"
        assert error.details["field"] == "currency"

    def test_unknown_shipping_option(self):
        error = UnknownShippingOption("teleport", known_ids=["fast", "slow"])

        assert error.option_id == "teleport"
        assert error.details["known_ids"] == ["fast", "slow"]
