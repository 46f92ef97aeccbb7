"""
PayPal Checkout orchestration.

Coordinates validation, the gateway bridge and the hosted-flow bridge for the
sessions opened by one integration:

    checkout = await PayPalCheckout.create(authorization="sandbox_abc_merchant")
    session_id = await checkout.create_payment({
        "flow": "checkout",
        "amount": "10.00",
        "currency": "USD",
    })
    # hand session_id to the hosted PayPal buttons
    payload = await checkout.wait_for_approval()
    credential = await checkout.tokenize_payment(payload)
    # send credential.nonce to your server
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from paypal_checkout import __version__
from paypal_checkout.bridges.base import GatewayBridge, HostedFlowBridge
from paypal_checkout.bridges.gateway import HttpGatewayBridge, parse_authorization
from paypal_checkout.bridges.hosted_flow import InMemoryHostedFlowBridge
from paypal_checkout.config import CheckoutSettings, load_settings
from paypal_checkout.errors import (
    ApprovalNotYetReceived,
    InstantiationOptionRequired,
    SessionAlreadyInFlight,
    SessionTornDown,
    ValidationError,
)
from paypal_checkout.logging import mask_value, session_id_var
from paypal_checkout.models import (
    ApprovalPayload,
    CheckoutModel,
    Credential,
    PaymentIntentSpec,
    SessionState,
    ValidatedSpec,
    VaultInitiatedCheckoutOptions,
)
from paypal_checkout.sdk_loader import PayPalSDKLoader, ScriptLoader
from paypal_checkout.session import CheckoutSession
from paypal_checkout.validation import validate_payment_spec, validate_vault_initiated_options

logger = logging.getLogger(__name__)

VAULT_INITIATED_IN_PROGRESS = "PAYPAL_START_VAULT_INITIATED_CHECKOUT_IN_PROGRESS"

OptionsInput = Union[CheckoutModel, dict[str, Any]]


def _coerce(model: type, options: Optional[OptionsInput], field: str):
    if options is None:
        options = {}
    if isinstance(options, model):
        return options
    if isinstance(options, CheckoutModel):
        options = options.model_dump(exclude_none=True)
    try:
        return model.model_validate(options)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or field
        raise ValidationError(
            f"Invalid {field}: {location}: {first.get('msg')}",
            field=location,
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from None


class PayPalCheckout:
    """
    Orchestrates PayPal sessions: validate -> open -> await approval -> tokenize.

    Sessions opened by one instance are independent of each other, but an
    instance opens one session at a time. ``teardown`` releases everything
    and makes the instance unusable.
    """

    VERSION = __version__

    def __init__(
        self,
        gateway: GatewayBridge,
        hosted_flow: Optional[HostedFlowBridge] = None,
        settings: Optional[CheckoutSettings] = None,
        script_loader: Optional[ScriptLoader] = None,
        owns_gateway: bool = False,
    ):
        self.settings = settings or load_settings()
        self.gateway = gateway
        self.hosted_flow = hosted_flow or InMemoryHostedFlowBridge()
        self.sdk_loader = PayPalSDKLoader(self.settings.sdk_url, script_loader)
        self._owns_gateway = owns_gateway
        self._sessions: dict[str, CheckoutSession] = {}
        self._current: Optional[CheckoutSession] = None
        self._opening = False
        self._torn_down = False
        self._client_id: Optional[str] = None

    @classmethod
    async def create(
        cls,
        client: Optional[GatewayBridge] = None,
        authorization: Optional[str] = None,
        merchant_account_id: Optional[str] = None,
        hosted_flow: Optional[HostedFlowBridge] = None,
        settings: Optional[CheckoutSettings] = None,
        script_loader: Optional[ScriptLoader] = None,
    ) -> "PayPalCheckout":
        """
        Create a checkout instance from a gateway client or an authorization.

        Args:
            client: An already configured gateway bridge
            authorization: Tokenization key or client token
            merchant_account_id: Merchant account to settle against
            hosted_flow: Channel to the hosted approval UI
            settings: Configuration (defaults to environment)
            script_loader: Coroutine that injects the SDK script URL

        Raises:
            InstantiationOptionRequired: Neither client nor authorization given
        """
        if client is None and not authorization:
            raise InstantiationOptionRequired(
                "options.client or options.authorization is required when instantiating PayPal Checkout"
            )

        settings = settings or load_settings()
        owns_gateway = False
        if client is None:
            base_url, credential = parse_authorization(
                authorization, settings.resolved_gateway_url
            )
            client = HttpGatewayBridge(
                base_url,
                credential,
                merchant_account_id=merchant_account_id,
                timeout=settings.request_timeout_seconds,
            )
            owns_gateway = True

        logger.info("PayPal Checkout %s created (%s)", cls.VERSION, settings.environment)
        return cls(
            client,
            hosted_flow=hosted_flow,
            settings=settings,
            script_loader=script_loader,
            owns_gateway=owns_gateway,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[CheckoutSession]:
        """Most recently created session."""
        return self._current

    @property
    def sessions(self) -> list[CheckoutSession]:
        return list(self._sessions.values())

    @property
    def session_id(self) -> Optional[str]:
        return self._current.session_id if self._current else None

    @property
    def state(self) -> SessionState:
        if self._torn_down:
            return SessionState.TORN_DOWN
        if self._current is None:
            return SessionState.UNINITIALIZED
        return self._current.state

    @property
    def is_torn_down(self) -> bool:
        return self._torn_down

    def _ensure_active(self, method: str) -> None:
        if self._torn_down:
            raise SessionTornDown(
                f"Cannot call {method} after teardown",
                details={"method": method},
            )

    # ------------------------------------------------------------------
    # Session creation
    # ------------------------------------------------------------------

    async def _open(self, spec: ValidatedSpec) -> str:
        session = CheckoutSession(spec, self.gateway, self.hosted_flow)
        self._current = session
        self._opening = True
        try:
            session_id = await session.open()
        finally:
            self._opening = False
        self._sessions[session_id] = session
        session_id_var.set(session_id)
        return session_id

    async def create_payment(self, options: OptionsInput) -> str:
        """
        Create a PayPal payment session (payment token or billing token).

        Args:
            options: ``PaymentIntentSpec`` or mapping of its fields

        Returns:
            Session id to hand to the hosted flow

        Raises:
            ValidationError: Options rejected; no gateway call was made
            SessionAlreadyInFlight: Another create_payment is still opening
            GatewayError: Gateway failed to open the session
        """
        self._ensure_active("createPayment")
        if self._opening:
            raise SessionAlreadyInFlight(
                "A session is already being created on this instance"
            )
        spec = _coerce(PaymentIntentSpec, options, "createPayment options")
        validated = validate_payment_spec(spec, self.settings.default_intent)
        return await self._open(validated)

    async def start_vault_initiated_checkout(self, options: OptionsInput) -> None:
        """
        Resume a vaulted PayPal account directly into the hosted flow.

        Opens the session and leaves it awaiting approval; there is no
        separate ``create_payment`` step.

        Raises:
            ValidationError: Options rejected; no gateway call was made
            SessionAlreadyInFlight: A vault initiated checkout is in progress
            GatewayError: Gateway failed to open the session
        """
        self._ensure_active("startVaultInitiatedCheckout")
        current = self._current
        if self._opening or (
            current is not None
            and current.spec.is_vault_initiated
            and current.state == SessionState.AWAITING_APPROVAL
        ):
            raise SessionAlreadyInFlight(
                "Vault initiated checkout already in progress",
                code=VAULT_INITIATED_IN_PROGRESS,
            )
        vault_options = _coerce(
            VaultInitiatedCheckoutOptions, options, "startVaultInitiatedCheckout options"
        )
        validated = validate_vault_initiated_options(vault_options, self.settings.default_intent)
        await self._open(validated)

    # ------------------------------------------------------------------
    # Approval and tokenization
    # ------------------------------------------------------------------

    def _session_for(self, payload: Optional[ApprovalPayload]) -> CheckoutSession:
        if payload is not None and payload.session_token in self._sessions:
            return self._sessions[payload.session_token]
        if self._current is None:
            raise ApprovalNotYetReceived("No PayPal session has been created")
        return self._current

    async def wait_for_approval(self, timeout: Optional[float] = None) -> ApprovalPayload:
        """Wait for the buyer to approve or cancel in the hosted UI."""
        self._ensure_active("waitForApproval")
        session = self._session_for(None)
        if timeout is None:
            timeout = self.settings.approval_timeout_seconds
        return await session.wait_for_approval(timeout)

    async def tokenize_payment(self, payload: Optional[OptionsInput] = None) -> Credential:
        """
        Exchange the buyer's approval for a single-use credential.

        Args:
            payload: Approval data from the hosted flow; when omitted the
                payload the hosted flow delivered is used

        Returns:
            Credential whose nonce the caller forwards to its server
        """
        self._ensure_active("tokenizePayment")
        approval = None
        if payload is not None:
            approval = _coerce(ApprovalPayload, payload, "tokenizePayment options")
        session = self._session_for(approval)
        credential = await session.tokenize(approval)
        logger.info("Tokenized session %s", mask_value(session.session_id))
        return credential

    async def tokenize_on_approval(self, timeout: Optional[float] = None) -> Credential:
        """Wait for approval, then tokenize it."""
        await self.wait_for_approval(timeout)
        return await self.tokenize_payment()

    # ------------------------------------------------------------------
    # Hosted SDK
    # ------------------------------------------------------------------

    async def get_client_id(self) -> str:
        """PayPal client id used to load the hosted SDK."""
        self._ensure_active("getClientId")
        if self._client_id is None:
            self._client_id = await self.gateway.get_client_id()
        return self._client_id

    async def load_paypal_sdk(self, options: Optional[dict[str, Any]] = None) -> str:
        """Load the hosted SDK once per process; returns the script URL."""
        self._ensure_active("loadPayPalSDK")
        client_id = await self.get_client_id()
        return await self.sdk_loader.load(client_id, options)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def teardown(self) -> None:
        """Tear down every session and release the gateway. Idempotent."""
        if self._torn_down:
            return
        self._torn_down = True
        sessions = list(self._sessions.values())
        if self._current is not None and self._current not in sessions:
            sessions.append(self._current)
        for session in sessions:
            session.teardown()
        if self._owns_gateway:
            await self.gateway.close()
        logger.info("PayPal Checkout torn down (%d sessions)", len(sessions))

    async def __aenter__(self) -> "PayPalCheckout":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.teardown()
