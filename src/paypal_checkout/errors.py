"""Error hierarchy for PayPal Checkout sessions.

Every error carries a stable ``code``. Callers branch on ``code``, never on
the message text:

    try:
        payload = await checkout.wait_for_approval()
    except PopupClosed:
        # buyer closed the hosted UI, no error UI needed
        ...
    except CheckoutError as e:
        if e.code == "PAYPAL_FLOW_FAILED":
            ...
"""
from __future__ import annotations

from typing import Any, Optional


class CheckoutError(Exception):
    """Base exception for PayPal Checkout."""

    code: str = "PAYPAL_CHECKOUT_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Validation errors (raised before any collaborator call)
# =============================================================================

class ValidationError(CheckoutError):
    """Invalid payment options."""

    code = "PAYPAL_INVALID_PAYMENT_OPTION"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, code=code, details=details)
        self.field = field


class MissingRequiredField(ValidationError):
    """A field required by the selected flow is absent."""

    code = "PAYPAL_MISSING_REQUIRED_OPTION"


class ConflictingFlowFields(ValidationError):
    """Options mix fields that belong to different flows."""

    code = "PAYPAL_CONFLICTING_FLOW_FIELDS"

    def __init__(self, message: str, fields: list[str], flow: Optional[str] = None):
        super().__init__(message, details={"fields": list(fields), "flow": flow})
        self.fields = list(fields)
        self.flow = flow


class ShippingOptionConflict(ValidationError):
    """Shipping options have duplicate ids or more than one selection."""

    code = "PAYPAL_SHIPPING_OPTION_CONFLICT"


class InstantiationOptionRequired(ValidationError):
    """Neither a client nor an authorization was given to ``create``."""

    code = "INSTANTIATION_OPTION_REQUIRED"


# =============================================================================
# Collaborator errors
# =============================================================================

class GatewayError(CheckoutError):
    """Transport or server failure while talking to the payment gateway."""

    code = "PAYPAL_FLOW_FAILED"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, code=code, details=details)
        self.status_code = status_code


class PopupClosed(CheckoutError):
    """The buyer closed the hosted UI without approving."""

    code = "PAYPAL_POPUP_CLOSED"

    def __init__(self, message: str = "Customer closed PayPal popup before authorizing."):
        super().__init__(message)


# =============================================================================
# Protocol and state violations
# =============================================================================

class ShippingOptionNotFound(CheckoutError):
    """Registry lookup for an id that was never registered."""

    code = "PAYPAL_SHIPPING_OPTION_NOT_FOUND"

    def __init__(self, option_id: str):
        super().__init__(
            f"Shipping option not found: {option_id}",
            details={"shipping_option_id": option_id},
        )
        self.option_id = option_id


class UnknownShippingOption(CheckoutError):
    """Approval names a shipping option that is not part of the session."""

    code = "PAYPAL_UNKNOWN_SHIPPING_OPTION"

    def __init__(self, option_id: str, known_ids: Optional[list[str]] = None):
        super().__init__(
            f"Shipping option '{option_id}' was not offered in this session",
            details={"shipping_option_id": option_id, "known_ids": list(known_ids or [])},
        )
        self.option_id = option_id


class DuplicateApprovalEvent(CheckoutError):
    """A second terminal event arrived for a session."""

    code = "PAYPAL_DUPLICATE_APPROVAL_EVENT"


class AlreadyTokenized(CheckoutError):
    """Tokenization was already performed (or is running) for this session."""

    code = "PAYPAL_ALREADY_TOKENIZED"


class SessionAlreadyInFlight(CheckoutError):
    """A session is being opened on this instance already."""

    code = "PAYPAL_SESSION_ALREADY_IN_FLIGHT"


class SessionTornDown(CheckoutError):
    """Operation attempted after teardown."""

    code = "METHOD_CALLED_AFTER_TEARDOWN"


class ApprovalNotYetReceived(CheckoutError):
    """Tokenization requested before the hosted flow reported approval."""

    code = "PAYPAL_APPROVAL_NOT_YET_RECEIVED"


class ApprovalMismatch(CheckoutError):
    """Approval payload names a different session token."""

    code = "PAYPAL_APPROVAL_MISMATCH"


class ApprovalTimeout(CheckoutError):
    """No terminal hosted-flow event arrived within the wait timeout."""

    code = "PAYPAL_APPROVAL_TIMEOUT"


class InvalidTransition(CheckoutError):
    """State change not allowed by the session state machine."""

    code = "PAYPAL_INVALID_STATE_TRANSITION"


__all__ = [
    "CheckoutError",
    "ValidationError",
    "MissingRequiredField",
    "ConflictingFlowFields",
    "ShippingOptionConflict",
    "InstantiationOptionRequired",
    "GatewayError",
    "PopupClosed",
    "ShippingOptionNotFound",
    "UnknownShippingOption",
    "DuplicateApprovalEvent",
    "AlreadyTokenized",
    "SessionAlreadyInFlight",
    "SessionTornDown",
    "ApprovalNotYetReceived",
    "ApprovalMismatch",
    "ApprovalTimeout",
    "InvalidTransition",
]
