"""
PayPal Checkout - client-side orchestration of hosted PayPal approval.

Negotiates a payment session with the gateway, hands control to the hosted
PayPal UI, waits for the buyer's approval or cancellation, and exchanges the
approval for a single-use credential the merchant's server can settle.

Features:
- vault (save a PayPal account) and checkout (one-time payment) flows
- vault initiated checkout for previously vaulted accounts
- shipping option negotiation with round-trip of the buyer's selection
- stable error codes (e.g. ``PAYPAL_POPUP_CLOSED``) for every failure
- init-once loading of the hosted SDK
"""

__version__ = "0.1.0"

from paypal_checkout.orchestrator import PayPalCheckout
from paypal_checkout.session import CheckoutSession, validate_transition
from paypal_checkout.shipping import ShippingOptionRegistry
from paypal_checkout.validation import validate_payment_spec, validate_vault_initiated_options
from paypal_checkout.config import CheckoutSettings, load_settings
from paypal_checkout.logging import configure_logging, setup_logging
from paypal_checkout.sdk_loader import PayPalSDKLoader, build_sdk_url, reset_sdk_state
from paypal_checkout.models import (
    # Options
    PaymentIntentSpec,
    VaultInitiatedCheckoutOptions,
    ValidatedSpec,
    ShippingOption,
    CurrencyAmount,
    Address,
    LineItem,
    # Results
    ApprovalPayload,
    Credential,
    PayerDetails,
    # Enums
    Flow,
    Intent,
    Locale,
    LandingPageType,
    LineItemKind,
    ShippingType,
    SessionState,
)
from paypal_checkout.errors import (
    CheckoutError,
    ValidationError,
    MissingRequiredField,
    ConflictingFlowFields,
    ShippingOptionConflict,
    InstantiationOptionRequired,
    GatewayError,
    PopupClosed,
    ShippingOptionNotFound,
    UnknownShippingOption,
    DuplicateApprovalEvent,
    AlreadyTokenized,
    SessionAlreadyInFlight,
    SessionTornDown,
    ApprovalNotYetReceived,
    ApprovalMismatch,
    ApprovalTimeout,
    InvalidTransition,
)
from paypal_checkout.bridges import (
    GatewayBridge,
    HostedFlowBridge,
    Subscription,
    HttpGatewayBridge,
    InMemoryGatewayBridge,
    InMemoryHostedFlowBridge,
)

__all__ = [
    # Orchestrator
    "PayPalCheckout",
    "CheckoutSession",
    "validate_transition",
    "ShippingOptionRegistry",
    "validate_payment_spec",
    "validate_vault_initiated_options",
    # Configuration
    "CheckoutSettings",
    "load_settings",
    "configure_logging",
    "setup_logging",
    # SDK loading
    "PayPalSDKLoader",
    "build_sdk_url",
    "reset_sdk_state",
    # Models
    "PaymentIntentSpec",
    "VaultInitiatedCheckoutOptions",
    "ValidatedSpec",
    "ShippingOption",
    "CurrencyAmount",
    "Address",
    "LineItem",
    "ApprovalPayload",
    "Credential",
    "PayerDetails",
    "Flow",
    "Intent",
    "Locale",
    "LandingPageType",
    "LineItemKind",
    "ShippingType",
    "SessionState",
    # Errors
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
    # Bridges
    "GatewayBridge",
    "HostedFlowBridge",
    "Subscription",
    "HttpGatewayBridge",
    "InMemoryGatewayBridge",
    "InMemoryHostedFlowBridge",
]
