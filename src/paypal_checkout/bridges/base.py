"""Collaborator interfaces consumed by the checkout state machine."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from paypal_checkout.errors import CheckoutError
from paypal_checkout.models import ApprovalPayload, Credential, ValidatedSpec

ApprovedCallback = Callable[[ApprovalPayload], None]
CancelledCallback = Callable[[], None]
FailedCallback = Callable[[CheckoutError], None]


class GatewayBridge(ABC):
    """Abstract interface to the payment gateway's session/tokenize endpoints."""

    @abstractmethod
    async def open_session(self, spec: ValidatedSpec) -> str:
        """
        Open a payment session.

        Args:
            spec: Validated session options

        Returns:
            Session id (payment token for checkout, billing token for vault)

        Raises:
            GatewayError: On transport or server failure
        """
        pass

    @abstractmethod
    async def exchange(
        self,
        session_id: str,
        payload: ApprovalPayload,
        spec: Optional[ValidatedSpec] = None,
    ) -> Credential:
        """
        Exchange an approval payload for a single-use credential.

        Args:
            session_id: Session id returned by ``open_session``
            payload: Approval data reported by the hosted flow
            spec: Options the session was opened with

        Returns:
            Credential

        Raises:
            GatewayError: On transport or server failure
        """
        pass

    @abstractmethod
    async def get_client_id(self) -> str:
        """Return the PayPal client id used to load the hosted SDK."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None


class Subscription:
    """
    Registration for the terminal event of one hosted-flow session.

    Once ``unsubscribe`` is called no callback is invoked, so events that
    arrive late are dropped.
    """

    def __init__(
        self,
        session_id: str,
        on_approved: ApprovedCallback,
        on_cancelled: CancelledCallback,
        on_failed: FailedCallback,
        options: Optional[dict[str, Any]] = None,
        on_unsubscribe: Optional[Callable[["Subscription"], None]] = None,
    ):
        self.session_id = session_id
        self.options = options or {}
        self._on_approved = on_approved
        self._on_cancelled = on_cancelled
        self._on_failed = on_failed
        self._on_unsubscribe = on_unsubscribe
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_unsubscribe is not None:
            self._on_unsubscribe(self)

    def deliver_approved(self, payload: ApprovalPayload) -> bool:
        if not self._active:
            return False
        self._on_approved(payload)
        return True

    def deliver_cancelled(self) -> bool:
        if not self._active:
            return False
        self._on_cancelled()
        return True

    def deliver_failed(self, error: CheckoutError) -> bool:
        if not self._active:
            return False
        self._on_failed(error)
        return True


class HostedFlowBridge(ABC):
    """Abstract channel to the externally operated approval UI."""

    @abstractmethod
    def subscribe(
        self,
        session_id: str,
        on_approved: ApprovedCallback,
        on_cancelled: CancelledCallback,
        on_failed: FailedCallback,
        options: Optional[dict[str, Any]] = None,
    ) -> Subscription:
        """
        Start the hosted flow for a session and register for its terminal event.

        Exactly one of the callbacks fires, exactly once, per subscription.
        """
        pass
