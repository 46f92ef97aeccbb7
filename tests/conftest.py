"""
Pytest configuration and fixtures for PayPal Checkout tests.
"""
from __future__ import annotations

import pytest

from paypal_checkout import (
    CheckoutSettings,
    InMemoryGatewayBridge,
    InMemoryHostedFlowBridge,
    PayPalCheckout,
    reset_sdk_state,
)
from paypal_checkout.config import load_settings


@pytest.fixture(autouse=True)
def clean_process_state():
    """Reset process-wide SDK and settings caches between tests."""
    reset_sdk_state()
    load_settings.cache_clear()
    yield
    reset_sdk_state()
    load_settings.cache_clear()


@pytest.fixture
def settings() -> CheckoutSettings:
    """Deterministic settings, independent of the environment."""
    return CheckoutSettings(
        _env_file=None,
        environment="sandbox",
        gateway_url="https://gateway.test/merchants",
        sdk_url="https://www.paypal.com/sdk/js",
        approval_timeout_seconds=None,
    )


@pytest.fixture
def gateway() -> InMemoryGatewayBridge:
    return InMemoryGatewayBridge(client_id="client-id-123")


@pytest.fixture
def hosted_flow() -> InMemoryHostedFlowBridge:
    return InMemoryHostedFlowBridge()


@pytest.fixture
async def checkout(gateway, hosted_flow, settings) -> PayPalCheckout:
    """Checkout instance wired to in-memory collaborators."""
    instance = await PayPalCheckout.create(
        client=gateway,
        hosted_flow=hosted_flow,
        settings=settings,
    )
    yield instance
    await instance.teardown()


@pytest.fixture
def checkout_options() -> dict:
    return {"flow": "checkout", "amount": "10.00", "currency": "USD"}


@pytest.fixture
def shipping_options() -> list[dict]:
    return [
        {
            "id": "UUID-9",
            "type": "PICKUP",
            "label": "Store Location Five",
            "selected": True,
            "amount": {"value": "1.00", "currency": "USD"},
        },
        {
            "id": "shipping-speed-fast",
            "type": "SHIPPING",
            "label": "Fast Shipping",
            "selected": False,
            "amount": {"value": "5.00", "currency": "USD"},
        },
        {
            "id": "shipping-speed-slow",
            "type": "SHIPPING",
            "label": "Slow Shipping",
            "selected": False,
            "amount": {"value": "1.00", "currency": "USD"},
        },
    ]
