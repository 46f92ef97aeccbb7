"""In-process hosted-flow bridge."""
from __future__ import annotations

import logging
from typing import Any, Optional, Union

from paypal_checkout.bridges.base import (
    ApprovedCallback,
    CancelledCallback,
    FailedCallback,
    HostedFlowBridge,
    Subscription,
)
from paypal_checkout.errors import CheckoutError, GatewayError
from paypal_checkout.models import ApprovalPayload

logger = logging.getLogger(__name__)


class InMemoryHostedFlowBridge(HostedFlowBridge):
    """
    Hosted-flow bridge driven by direct method calls.

    Used in tests and for server-side simulations of the buyer: ``approve``,
    ``cancel`` and ``fail`` play the role of the popup reporting back. Events
    for a session without an active subscription are dropped.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self.opened: list[tuple[str, dict[str, Any]]] = []

    def subscribe(
        self,
        session_id: str,
        on_approved: ApprovedCallback,
        on_cancelled: CancelledCallback,
        on_failed: FailedCallback,
        options: Optional[dict[str, Any]] = None,
    ) -> Subscription:
        subscription = Subscription(
            session_id,
            on_approved,
            on_cancelled,
            on_failed,
            options=options,
            on_unsubscribe=self._release,
        )
        self._subscriptions[session_id] = subscription
        self.opened.append((session_id, dict(options or {})))
        logger.debug("Hosted flow opened for session")
        return subscription

    def _release(self, subscription: Subscription) -> None:
        if self._subscriptions.get(subscription.session_id) is subscription:
            del self._subscriptions[subscription.session_id]

    def is_subscribed(self, session_id: str) -> bool:
        subscription = self._subscriptions.get(session_id)
        return subscription is not None and subscription.active

    def approve(
        self,
        session_id: str,
        payload: Union[ApprovalPayload, dict[str, Any], None] = None,
    ) -> bool:
        """Report buyer approval. Returns False if the event was dropped."""
        subscription = self._subscriptions.get(session_id)
        if subscription is None:
            logger.debug("Dropping approval for unsubscribed session")
            return False
        if payload is None:
            payload = ApprovalPayload(order_id=session_id, payer_id="PAYER123")
        elif not isinstance(payload, ApprovalPayload):
            payload = ApprovalPayload.model_validate(payload)
        return subscription.deliver_approved(payload)

    def cancel(self, session_id: str) -> bool:
        """Report that the buyer closed the popup."""
        subscription = self._subscriptions.get(session_id)
        if subscription is None:
            logger.debug("Dropping cancellation for unsubscribed session")
            return False
        return subscription.deliver_cancelled()

    def fail(self, session_id: str, error: Optional[CheckoutError] = None) -> bool:
        """Report a transport or server failure inside the hosted flow."""
        subscription = self._subscriptions.get(session_id)
        if subscription is None:
            logger.debug("Dropping failure for unsubscribed session")
            return False
        return subscription.deliver_failed(error or GatewayError("Hosted flow failed"))
