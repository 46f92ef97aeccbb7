"""
Checkout session state machine.

One ``CheckoutSession`` is one attempt at create -> approve -> tokenize:

    UNINITIALIZED -> SESSION_CREATED -> AWAITING_APPROVAL
        -> APPROVED -> TOKENIZED
        -> CANCELLED
        -> FAILED
    any state -> TORN_DOWN

The hosted flow reports back through callbacks. Only the first terminal
event moves the session; later ones are logged as protocol violations and
ignored. A session is never reused after a terminal transition.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from paypal_checkout.bridges.base import GatewayBridge, HostedFlowBridge, Subscription
from paypal_checkout.errors import (
    AlreadyTokenized,
    ApprovalMismatch,
    ApprovalNotYetReceived,
    ApprovalTimeout,
    CheckoutError,
    DuplicateApprovalEvent,
    GatewayError,
    InvalidTransition,
    PopupClosed,
    SessionTornDown,
    UnknownShippingOption,
)
from paypal_checkout.logging import mask_value
from paypal_checkout.models import ApprovalPayload, Credential, SessionState, ValidatedSpec
from paypal_checkout.shipping import ShippingOptionRegistry

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.UNINITIALIZED: {
        SessionState.SESSION_CREATED,
        SessionState.FAILED,
        SessionState.TORN_DOWN,
    },
    SessionState.SESSION_CREATED: {
        SessionState.AWAITING_APPROVAL,
        SessionState.FAILED,
        SessionState.TORN_DOWN,
    },
    SessionState.AWAITING_APPROVAL: {
        SessionState.APPROVED,
        SessionState.CANCELLED,
        SessionState.FAILED,
        SessionState.TORN_DOWN,
    },
    SessionState.APPROVED: {
        SessionState.TOKENIZED,
        SessionState.FAILED,
        SessionState.TORN_DOWN,
    },
    SessionState.CANCELLED: {SessionState.TORN_DOWN},
    SessionState.FAILED: {SessionState.TORN_DOWN},
    SessionState.TOKENIZED: {SessionState.TORN_DOWN},
    SessionState.TORN_DOWN: set(),
}

OPEN_FAILED = "PAYPAL_FLOW_FAILED"
TOKENIZATION_FAILED = "PAYPAL_ACCOUNT_TOKENIZATION_FAILED"


def validate_transition(current: SessionState, new: SessionState) -> None:
    """Raise when a transition is not allowed by the state machine."""
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransition(
            f"Invalid transition: {current.value} -> {new.value}",
            details={"from": current.value, "to": new.value},
        )


class CheckoutSession:
    """
    A single PayPal payment session.

    Owns its shipping option registry and its hosted-flow subscription.
    """

    def __init__(
        self,
        spec: ValidatedSpec,
        gateway: GatewayBridge,
        hosted_flow: HostedFlowBridge,
    ):
        self.spec = spec
        self._gateway = gateway
        self._hosted_flow = hosted_flow
        self._state = SessionState.UNINITIALIZED
        self._session_id: Optional[str] = None
        self._registry: Optional[ShippingOptionRegistry] = ShippingOptionRegistry.register(
            spec.shipping_options
        )
        self._subscription: Optional[Subscription] = None
        self._settled = asyncio.Event()
        self._approval: Optional[ApprovalPayload] = None
        self._error: Optional[CheckoutError] = None
        self._credential: Optional[Credential] = None
        self._tokenizing = False
        self.protocol_violations: list[DuplicateApprovalEvent] = []

    def __repr__(self) -> str:
        return (
            f"CheckoutSession(flow={self.spec.flow.value}, state={self._state.value}, "
            f"session_id={mask_value(self._session_id)})"
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def flow(self):
        return self.spec.flow

    @property
    def registry(self) -> Optional[ShippingOptionRegistry]:
        return self._registry

    @property
    def approval(self) -> Optional[ApprovalPayload]:
        return self._approval

    @property
    def error(self) -> Optional[CheckoutError]:
        return self._error

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    @property
    def is_settled(self) -> bool:
        """True once the hosted flow (or teardown) has decided the session."""
        return self._settled.is_set()

    def _transition(self, new: SessionState) -> None:
        validate_transition(self._state, new)
        logger.info(
            "Session %s: %s -> %s",
            mask_value(self._session_id),
            self._state.value,
            new.value,
        )
        self._state = new

    def _fail(self, error: CheckoutError) -> None:
        self._error = error
        self._transition(SessionState.FAILED)
        self._settled.set()

    def _release_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    # ------------------------------------------------------------------
    # Opening
    # ------------------------------------------------------------------

    async def open(self) -> str:
        """
        Open the session with the gateway and start the hosted flow.

        Returns:
            Session id

        Raises:
            GatewayError: Session could not be opened; the session is FAILED
        """
        if self._state == SessionState.TORN_DOWN:
            raise SessionTornDown("Session was torn down")

        try:
            session_id = await self._gateway.open_session(self.spec)
        except Exception as e:
            if self._state == SessionState.TORN_DOWN:
                raise SessionTornDown("Session was torn down while opening") from e
            error = e if isinstance(e, CheckoutError) else GatewayError(f"Failed to open session: {e}")
            logger.error("Failed to open %s session: %s", self.spec.flow.value, e)
            self._fail(error)
            if error is e:
                raise
            raise error from e

        if self._state == SessionState.TORN_DOWN:
            # torn down while the gateway call was pending
            raise SessionTornDown("Session was torn down while opening")

        self._session_id = session_id
        self._transition(SessionState.SESSION_CREATED)
        self._await_approval()
        return session_id

    def _await_approval(self) -> None:
        self._transition(SessionState.AWAITING_APPROVAL)
        options = {}
        if self.spec.is_vault_initiated:
            options["opt_out_of_modal_backdrop"] = self.spec.opt_out_of_modal_backdrop
        try:
            self._subscription = self._hosted_flow.subscribe(
                self._session_id,
                self._on_approved,
                self._on_cancelled,
                self._on_failed,
                options=options,
            )
        except Exception as e:
            error = e if isinstance(e, CheckoutError) else GatewayError(
                f"Failed to start hosted flow: {e}", code=OPEN_FAILED
            )
            logger.error("Hosted flow did not start for session %s: %s", mask_value(self._session_id), e)
            self._fail(error)
            if error is e:
                raise
            raise error from e

    # ------------------------------------------------------------------
    # Hosted-flow callbacks
    # ------------------------------------------------------------------

    def _accepts_terminal_event(self, kind: str) -> bool:
        if self._state == SessionState.AWAITING_APPROVAL:
            return True
        if self._state == SessionState.TORN_DOWN:
            logger.debug("Dropping %s event for torn down session", kind)
            return False
        violation = DuplicateApprovalEvent(
            f"Ignoring {kind} event: session already {self._state.value}",
            details={"event": kind, "state": self._state.value},
        )
        self.protocol_violations.append(violation)
        logger.warning(
            "Duplicate hosted-flow event for session %s: %s",
            mask_value(self._session_id),
            violation.message,
        )
        return False

    def _on_approved(self, payload: ApprovalPayload) -> None:
        if not self._accepts_terminal_event("approved"):
            return
        try:
            self._registry.ensure_known(payload.shipping_option_id)
        except UnknownShippingOption as e:
            logger.error("Approval rejected: %s", e)
            self._fail(e)
            return
        if payload.shipping_option_id is not None:
            self._registry.select(payload.shipping_option_id)
        self._approval = payload
        self._transition(SessionState.APPROVED)
        self._settled.set()

    def _on_cancelled(self) -> None:
        if not self._accepts_terminal_event("cancelled"):
            return
        self._error = PopupClosed()
        self._transition(SessionState.CANCELLED)
        self._settled.set()

    def _on_failed(self, error: CheckoutError) -> None:
        if not self._accepts_terminal_event("failed"):
            return
        logger.error("Hosted flow failed for session %s: %s", mask_value(self._session_id), error)
        self._fail(error)

    # ------------------------------------------------------------------
    # Caller operations
    # ------------------------------------------------------------------

    def _raise_for_terminal_state(self) -> None:
        if self._state == SessionState.TORN_DOWN:
            raise SessionTornDown("Session was torn down")
        if self._state == SessionState.CANCELLED:
            raise self._error or PopupClosed()
        if self._state == SessionState.FAILED and self._error is not None:
            raise self._error

    async def wait_for_approval(self, timeout: Optional[float] = None) -> ApprovalPayload:
        """
        Wait for the hosted flow's terminal event.

        Raises:
            PopupClosed: Buyer closed the hosted UI
            GatewayError: Hosted flow or gateway failure
            UnknownShippingOption: Approval named an option never offered
            SessionTornDown: Session was torn down
            ApprovalTimeout: Nothing arrived within ``timeout`` seconds
        """
        if not self._settled.is_set():
            try:
                await asyncio.wait_for(self._settled.wait(), timeout)
            except asyncio.TimeoutError:
                raise ApprovalTimeout(
                    f"No approval received within {timeout} seconds",
                    details={"timeout": timeout},
                ) from None

        self._raise_for_terminal_state()
        return self._approval

    def _merge_payload(self, payload: Optional[ApprovalPayload]) -> ApprovalPayload:
        if payload is None:
            return self._approval
        token = payload.session_token
        if token is not None and token != self._session_id:
            raise ApprovalMismatch(
                "Approval payload belongs to a different session",
                details={"session_token": mask_value(token)},
            )
        overrides = payload.model_dump(exclude_none=True)
        return self._approval.model_copy(update=overrides)

    async def tokenize(self, payload: Optional[ApprovalPayload] = None) -> Credential:
        """
        Exchange the approval for a credential. Not idempotent.

        Args:
            payload: Optional caller-supplied approval data; overrides fields
                (e.g. ``vault``) of the payload reported by the hosted flow

        Raises:
            AlreadyTokenized: Tokenization already happened or is running
            ApprovalNotYetReceived: Hosted flow has not reported approval
            ApprovalMismatch: Payload names a different session
            UnknownShippingOption: Payload names an option never offered
            PopupClosed: Buyer cancelled
            SessionTornDown: Session was torn down
            GatewayError: Exchange failed; the session is FAILED
        """
        if self._state == SessionState.TOKENIZED or self._tokenizing:
            raise AlreadyTokenized("Payment was already tokenized for this session")
        self._raise_for_terminal_state()
        if self._state != SessionState.APPROVED:
            raise ApprovalNotYetReceived(
                f"Cannot tokenize while session is {self._state.value}",
                details={"state": self._state.value},
            )

        merged = self._merge_payload(payload)
        try:
            self._registry.ensure_known(merged.shipping_option_id)
        except UnknownShippingOption as e:
            self._fail(e)
            raise
        if merged.shipping_option_id is not None:
            self._registry.select(merged.shipping_option_id)

        self._tokenizing = True
        try:
            credential = await self._gateway.exchange(self._session_id, merged, self.spec)
        except CheckoutError as e:
            if self._state != SessionState.TORN_DOWN:
                self._fail(e)
            raise
        except Exception as e:
            error = GatewayError(f"Tokenization failed: {e}", code=TOKENIZATION_FAILED)
            if self._state != SessionState.TORN_DOWN:
                self._fail(error)
            raise error from e
        finally:
            self._tokenizing = False

        if self._state == SessionState.TORN_DOWN:
            raise SessionTornDown("Session was torn down during tokenization")

        self._credential = credential.model_copy(
            update={"selected_shipping_option": self._registry.selected()}
        )
        self._transition(SessionState.TOKENIZED)
        self._release_subscription()
        return self._credential

    def teardown(self) -> None:
        """Release the hosted-flow subscription and invalidate the session."""
        if self._state == SessionState.TORN_DOWN:
            return
        self._release_subscription()
        self._transition(SessionState.TORN_DOWN)
        self._registry = None
        self._settled.set()
