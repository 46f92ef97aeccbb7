"""
Validation of session options.

Pure functions: each either returns a ``ValidatedSpec`` or raises a
``ValidationError`` subclass. Nothing here talks to a collaborator, so every
failure surfaces before a session is opened.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from paypal_checkout.errors import (
    ConflictingFlowFields,
    MissingRequiredField,
    ValidationError,
)
from paypal_checkout.models import (
    Flow,
    Intent,
    PaymentIntentSpec,
    ValidatedSpec,
    VaultInitiatedCheckoutOptions,
)
from paypal_checkout.shipping import ShippingOptionRegistry

CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")

# Fields that only make sense for one flow
CHECKOUT_ONLY_FIELDS = ("amount", "currency")
VAULT_INITIATED_FIELDS = ("vault_initiated_checkout_payment_method_token",)

START_VAULT_INITIATED_PARAM_REQUIRED = "PAYPAL_START_VAULT_INITIATED_CHECKOUT_PARAM_REQUIRED"
FLOW_OPTION_REQUIRED = "PAYPAL_FLOW_OPTION_REQUIRED"


def _present(spec: PaymentIntentSpec, names: tuple[str, ...]) -> list[str]:
    return [name for name in names if getattr(spec, name) is not None]


def parse_amount(value: Optional[str], code: Optional[str] = None) -> Decimal:
    """Parse a positive decimal amount."""
    if value is None or not str(value).strip():
        raise MissingRequiredField("amount is required", field="amount", code=code)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"amount is not a decimal: {value!r}", field="amount") from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"amount must be positive: {value!r}", field="amount")
    return amount


def parse_currency(value: Optional[str], code: Optional[str] = None) -> str:
    """Parse an ISO 4217 currency code."""
    if value is None or not value.strip():
        raise MissingRequiredField("currency is required", field="currency", code=code)
    currency = value.strip().upper()
    if not CURRENCY_CODE_RE.match(currency):
        raise ValidationError(f"currency is not an ISO 4217 code: {value!r}", field="currency")
    return currency


def _display_fields(spec: PaymentIntentSpec) -> dict:
    return {
        "offer_credit": spec.offer_credit,
        "display_name": spec.display_name,
        "locale": spec.locale,
        "enable_shipping_address": spec.enable_shipping_address,
        "shipping_address_override": spec.shipping_address_override,
        "shipping_address_editable": spec.shipping_address_editable,
        "billing_agreement_description": spec.billing_agreement_description,
        "landing_page_type": spec.landing_page_type,
        "line_items": spec.line_items,
    }


def validate_payment_spec(
    spec: PaymentIntentSpec,
    default_intent: Intent = Intent.AUTHORIZE,
) -> ValidatedSpec:
    """
    Validate ``create_payment`` options for the vault or checkout flow.

    Raises:
        MissingRequiredField: flow, amount or currency missing
        ConflictingFlowFields: fields from another flow are set
        ShippingOptionConflict: duplicate ids or multiple selections
        ValidationError: malformed amount or currency
    """
    if spec.flow is None:
        raise MissingRequiredField(
            "PayPal flow property is invalid or missing",
            field="flow",
            code=FLOW_OPTION_REQUIRED,
        )

    if spec.flow == Flow.VAULT:
        conflicting = _present(spec, CHECKOUT_ONLY_FIELDS + VAULT_INITIATED_FIELDS)
        if conflicting:
            raise ConflictingFlowFields(
                f"vault flow does not accept: {', '.join(conflicting)}",
                fields=conflicting,
                flow=spec.flow.value,
            )
        ShippingOptionRegistry.register(spec.shipping_options)
        return ValidatedSpec(
            flow=Flow.VAULT,
            shipping_options=list(spec.shipping_options or []),
            **_display_fields(spec),
        )

    conflicting = _present(spec, VAULT_INITIATED_FIELDS)
    if conflicting:
        raise ConflictingFlowFields(
            "checkout flow does not accept a vaulted payment method token; "
            "use start_vault_initiated_checkout instead",
            fields=conflicting,
            flow=spec.flow.value,
        )

    amount = parse_amount(spec.amount)
    currency = parse_currency(spec.currency)
    ShippingOptionRegistry.register(spec.shipping_options)

    return ValidatedSpec(
        flow=Flow.CHECKOUT,
        intent=spec.intent or default_intent,
        amount=amount,
        currency=currency,
        shipping_options=list(spec.shipping_options or []),
        **_display_fields(spec),
    )


def validate_vault_initiated_options(
    options: VaultInitiatedCheckoutOptions,
    default_intent: Intent = Intent.AUTHORIZE,
) -> ValidatedSpec:
    """
    Validate options for resuming a vaulted PayPal account.

    ``flow`` must not be set; it is always checkout.
    """
    if options.flow is not None:
        raise ConflictingFlowFields(
            "flow cannot be set for a vault initiated checkout",
            fields=["flow"],
            flow=options.flow.value,
        )

    token = options.vault_initiated_checkout_payment_method_token
    if not token:
        raise MissingRequiredField(
            "vaultInitiatedCheckoutPaymentMethodToken is required",
            field="vault_initiated_checkout_payment_method_token",
            code=START_VAULT_INITIATED_PARAM_REQUIRED,
        )
    amount = parse_amount(options.amount, code=START_VAULT_INITIATED_PARAM_REQUIRED)
    currency = parse_currency(options.currency, code=START_VAULT_INITIATED_PARAM_REQUIRED)
    ShippingOptionRegistry.register(options.shipping_options)

    return ValidatedSpec(
        flow=Flow.CHECKOUT,
        intent=options.intent or default_intent,
        amount=amount,
        currency=currency,
        vault_initiated_checkout_payment_method_token=token,
        shipping_options=list(options.shipping_options or []),
        opt_out_of_modal_backdrop=options.opt_out_of_modal_backdrop,
        **_display_fields(options),
    )
