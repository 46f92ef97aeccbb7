"""PayPal Checkout data models."""
from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CheckoutModel(BaseModel):
    """Base model with common configuration.

    Accepts both the snake_case field names and the camelCase keys used by
    the hosted PayPal integration.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to a camelCase dictionary."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckoutModel":
        """Create model from dictionary."""
        return cls.model_validate(data)


# =============================================================================
# Closed sets
# =============================================================================

class Flow(str, Enum):
    """Checkout flow."""
    VAULT = "vault"
    CHECKOUT = "checkout"


class Intent(str, Enum):
    """Payment intent for the checkout flow."""
    AUTHORIZE = "authorize"
    ORDER = "order"
    CAPTURE = "capture"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Intent"]:
        # "sale" is accepted as an alias for capture
        if isinstance(value, str) and value.lower() == "sale":
            return cls.CAPTURE
        return None


class ShippingType(str, Enum):
    """How the buyer gets their items."""
    SHIPPING = "SHIPPING"
    PICKUP = "PICKUP"


class LandingPageType(str, Enum):
    """Landing page shown by the hosted flow."""
    LOGIN = "login"
    BILLING = "billing"


class LineItemKind(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class Locale(str, Enum):
    """Locales supported by the hosted flow."""
    DA_DK = "da_DK"
    DE_DE = "de_DE"
    EN_AU = "en_AU"
    EN_GB = "en_GB"
    EN_US = "en_US"
    ES_ES = "es_ES"
    FR_CA = "fr_CA"
    FR_FR = "fr_FR"
    ID_ID = "id_ID"
    IT_IT = "it_IT"
    JA_JP = "ja_JP"
    KO_KR = "ko_KR"
    NL_NL = "nl_NL"
    NO_NO = "no_NO"
    PL_PL = "pl_PL"
    PT_BR = "pt_BR"
    PT_PT = "pt_PT"
    RU_RU = "ru_RU"
    SV_SE = "sv_SE"
    TH_TH = "th_TH"
    ZH_CN = "zh_CN"
    ZH_HK = "zh_HK"
    ZH_TW = "zh_TW"


class SessionState(str, Enum):
    """Lifecycle of a single checkout session."""
    UNINITIALIZED = "uninitialized"
    SESSION_CREATED = "session_created"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    CANCELLED = "cancelled"
    FAILED = "failed"
    TOKENIZED = "tokenized"
    TORN_DOWN = "torn_down"


# =============================================================================
# Pass-through structures
# =============================================================================

class CurrencyAmount(CheckoutModel):
    """A currency value."""
    value: str
    currency: str

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> Any:
        if isinstance(v, (int, float, Decimal)):
            return str(v)
        return v


class Address(CheckoutModel):
    """Postal address (not validated beyond presence)."""
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None
    phone: Optional[str] = None
    recipient_name: Optional[str] = None


class LineItem(CheckoutModel):
    """Line item shown to the buyer."""
    quantity: str
    unit_amount: str
    name: str
    kind: LineItemKind = LineItemKind.DEBIT
    unit_tax_amount: Optional[str] = None
    description: Optional[str] = None
    product_code: Optional[str] = None
    url: Optional[str] = None


class ShippingOption(CheckoutModel):
    """A priced delivery or pickup choice offered to the buyer."""
    id: str
    label: str
    type: ShippingType = ShippingType.SHIPPING
    selected: bool = False
    amount: CurrencyAmount


# =============================================================================
# Session options
# =============================================================================

class DisplayOptions(CheckoutModel):
    """Options forwarded to the hosted flow without validation."""
    offer_credit: Optional[bool] = None
    display_name: Optional[str] = None
    locale: Optional[Locale] = None
    enable_shipping_address: Optional[bool] = None
    shipping_address_override: Optional[Address] = None
    shipping_address_editable: Optional[bool] = None
    billing_agreement_description: Optional[str] = None
    landing_page_type: Optional[LandingPageType] = None
    line_items: Optional[list[LineItem]] = None


class PaymentIntentSpec(DisplayOptions):
    """Caller's request to start a session (``create_payment`` options)."""
    flow: Optional[Flow] = None
    intent: Optional[Intent] = None
    amount: Optional[str] = None
    currency: Optional[str] = None
    vault_initiated_checkout_payment_method_token: Optional[str] = None
    shipping_options: Optional[list[ShippingOption]] = None

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
            return str(v)
        return v


class VaultInitiatedCheckoutOptions(PaymentIntentSpec):
    """Options for resuming a previously vaulted PayPal account.

    ``flow`` is part of the shape only so that setting it can be rejected.
    """
    opt_out_of_modal_backdrop: bool = False


class ValidatedSpec(DisplayOptions):
    """Normalized options produced by the validator."""

    model_config = ConfigDict(frozen=True)

    flow: Flow
    intent: Optional[Intent] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    vault_initiated_checkout_payment_method_token: Optional[str] = None
    shipping_options: list[ShippingOption] = Field(default_factory=list)
    opt_out_of_modal_backdrop: bool = False

    @property
    def is_vault_initiated(self) -> bool:
        return self.vault_initiated_checkout_payment_method_token is not None


# =============================================================================
# Approval and tokenization
# =============================================================================

class ApprovalPayload(CheckoutModel):
    """Data delivered by the hosted flow when the buyer approves."""
    payer_id: Optional[str] = Field(
        default=None,
        alias="payerID",
        validation_alias=AliasChoices("payerID", "payerId", "payer_id"),
    )
    order_id: Optional[str] = Field(
        default=None,
        alias="orderID",
        validation_alias=AliasChoices("orderID", "orderId", "order_id"),
    )
    payment_id: Optional[str] = Field(
        default=None,
        alias="paymentID",
        validation_alias=AliasChoices("paymentID", "paymentId", "payment_id"),
    )
    payment_token: Optional[str] = None
    billing_token: Optional[str] = None
    shipping_option_id: Optional[str] = Field(
        default=None,
        alias="shippingOptionsId",
        validation_alias=AliasChoices(
            "shippingOptionsId", "shippingOptionId", "shipping_option_id"
        ),
    )
    vault: Optional[bool] = None

    @property
    def session_token(self) -> Optional[str]:
        """Identifier of the session this approval belongs to, if present."""
        return self.billing_token or self.payment_token or self.order_id


class PayerDetails(CheckoutModel):
    """Payer information returned with the credential."""
    email: Optional[str] = None
    payer_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country_code: Optional[str] = None
    phone: Optional[str] = None
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None


class Credential(CheckoutModel):
    """Single-use payment nonce for the merchant's server."""

    model_config = ConfigDict(frozen=True)

    nonce: str
    type: str = "PayPalAccount"
    details: PayerDetails = Field(default_factory=PayerDetails)
    selected_shipping_option: Optional[ShippingOption] = None
    credit_financing_offered: Optional[dict[str, Any]] = None


__all__ = [
    "CheckoutModel",
    "Flow",
    "Intent",
    "ShippingType",
    "LandingPageType",
    "LineItemKind",
    "Locale",
    "SessionState",
    "CurrencyAmount",
    "Address",
    "LineItem",
    "ShippingOption",
    "DisplayOptions",
    "PaymentIntentSpec",
    "VaultInitiatedCheckoutOptions",
    "ValidatedSpec",
    "ApprovalPayload",
    "PayerDetails",
    "Credential",
]
