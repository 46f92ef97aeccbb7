"""
Tests for the HTTP gateway bridge.

Uses pytest-httpx to stand in for the gateway's client API.
"""
from __future__ import annotations

import base64
import json

import httpx
import pytest

from paypal_checkout import (
    GatewayError,
    HttpGatewayBridge,
    InstantiationOptionRequired,
    PayPalCheckout,
    SessionState,
)
from paypal_checkout.bridges.gateway import parse_authorization
from paypal_checkout.models import ApprovalPayload, PaymentIntentSpec, VaultInitiatedCheckoutOptions
from paypal_checkout.validation import validate_payment_spec, validate_vault_initiated_options

TOKENIZATION_KEY = "sandbox_abc123_merchant42"
BASE_URL = "https://gateway.test/merchants/merchant42/client_api"


def make_client_token(**overrides) -> str:
    data = {
        "configUrl": "https://gateway.test/merchants/m1/client_api/v1/configuration",
        "authorizationFingerprint": "fingerprint-abc",
    }
    data.update(overrides)
    return base64.b64encode(json.dumps(data).encode()).decode()


@pytest.fixture
async def bridge():
    instance = HttpGatewayBridge(BASE_URL, TOKENIZATION_KEY, timeout=5.0)
    yield instance
    await instance.close()


@pytest.fixture
def checkout_spec():
    return validate_payment_spec(
        PaymentIntentSpec(flow="checkout", amount="10.00", currency="USD", display_name="Shop")
    )


@pytest.fixture
def vault_spec():
    return validate_payment_spec(PaymentIntentSpec(flow="vault", billing_agreement_description="Monthly"))


def sent_json(request: httpx.Request) -> dict:
    return json.loads(request.content)


class TestParseAuthorization:
    def test_tokenization_key(self):
        base_url, credential = parse_authorization(TOKENIZATION_KEY, "https://gateway.test/merchants")

        assert base_url == BASE_URL
        assert credential == TOKENIZATION_KEY

    def test_client_token(self):
        base_url, credential = parse_authorization(make_client_token(), "https://ignored")

        assert base_url == "https://gateway.test/merchants/m1/client_api"
        assert credential == "fingerprint-abc"

    def test_client_token_without_fingerprint(self):
        with pytest.raises(InstantiationOptionRequired):
            parse_authorization(make_client_token(authorizationFingerprint=""), "https://ignored")

    def test_garbage(self):
        with pytest.raises(InstantiationOptionRequired) as exc_info:
            parse_authorization("not-an-authorization!", "https://ignored")

        assert exc_info.value.field == "authorization"


class TestOpenSession:
    async def test_checkout(self, bridge, checkout_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/paypal_hermes/create_payment_resource",
            json={"paymentResource": {"paymentToken": "EC-123", "redirectUrl": "https://paypal.test"}},
        )

        session_id = await bridge.open_session(checkout_spec)

        assert session_id == "EC-123"
        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"] == f"Bearer {TOKENIZATION_KEY}"
        body = sent_json(request)
        assert body["amount"] == "10.00"
        assert body["currencyIsoCode"] == "USD"
        assert body["intent"] == "authorize"
        assert body["offerPaypalCredit"] is False
        assert body["experienceProfile"]["brandName"] == "Shop"

    async def test_display_options(self, bridge, httpx_mock):
        spec = validate_payment_spec(
            PaymentIntentSpec.model_validate(
                {
                    "flow": "checkout",
                    "amount": "10.00",
                    "currency": "USD",
                    "locale": "de_DE",
                    "enableShippingAddress": True,
                    "shippingAddressEditable": False,
                    "shippingAddressOverride": {"line1": "1 Main St", "city": "Berlin", "countryCode": "DE"},
                    "lineItems": [{"quantity": "1", "unitAmount": "10.00", "name": "Mug"}],
                }
            )
        )
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/paypal_hermes/create_payment_resource",
            json={"paymentResource": {"paymentToken": "EC-123"}},
        )

        await bridge.open_session(spec)

        body = sent_json(httpx_mock.get_requests()[0])
        assert body["experienceProfile"]["localeCode"] == "de_DE"
        assert body["experienceProfile"]["noShipping"] == "false"
        assert body["experienceProfile"]["addressOverride"] is True
        assert body["line1"] == "1 Main St"
        assert body["countryCode"] == "DE"
        assert body["lineItems"] == [{"quantity": "1", "unitAmount": "10.00", "name": "Mug", "kind": "debit"}]

    async def test_vault(self, bridge, vault_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/paypal_hermes/setup_billing_agreement",
            json={"agreementSetup": {"tokenId": "BA-456"}},
        )

        session_id = await bridge.open_session(vault_spec)

        assert session_id == "BA-456"
        body = sent_json(httpx_mock.get_requests()[0])
        assert "amount" not in body
        assert body["description"] == "Monthly"

    async def test_vault_initiated(self, bridge, httpx_mock):
        spec = validate_vault_initiated_options(
            VaultInitiatedCheckoutOptions(
                vault_initiated_checkout_payment_method_token="tok_1",
                amount="5.00",
                currency="USD",
            )
        )
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/paypal_hermes/create_payment_resource",
            json={"paymentResource": {"paymentToken": "EC-789"}},
        )

        assert await bridge.open_session(spec) == "EC-789"
        body = sent_json(httpx_mock.get_requests()[0])
        assert body["vaultInitiatedCheckoutPaymentMethodToken"] == "tok_1"

    async def test_http_error(self, bridge, checkout_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/paypal_hermes/create_payment_resource",
            status_code=422,
            json={"error": {"message": "Amount is an invalid format"}},
        )

        with pytest.raises(GatewayError) as exc_info:
            await bridge.open_session(checkout_spec)

        assert exc_info.value.status_code == 422
        assert exc_info.value.message == "Amount is an invalid format"
        assert exc_info.value.code == "PAYPAL_FLOW_FAILED"

    async def test_transport_error(self, bridge, checkout_spec, httpx_mock):
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(GatewayError) as exc_info:
            await bridge.open_session(checkout_spec)

        assert exc_info.value.status_code is None

    async def test_missing_token(self, bridge, checkout_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/paypal_hermes/create_payment_resource",
            json={"paymentResource": {}},
        )

        with pytest.raises(GatewayError):
            await bridge.open_session(checkout_spec)


class TestExchange:
    account = {
        "nonce": "nonce-abc",
        "type": "PayPalAccount",
        "details": {
            "payerInfo": {
                "email": "buyer@example.com",
                "payerId": "PAYER-1",
                "firstName": "Ada",
                "lastName": "Lovelace",
                "countryCode": "GB",
            },
        },
    }

    async def test_checkout(self, bridge, checkout_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/payment_methods/paypal_accounts",
            json={"paypalAccounts": [self.account]},
        )
        payload = ApprovalPayload(order_id="EC-123", payer_id="PAYER-1", shipping_option_id="fast")

        credential = await bridge.exchange("EC-123", payload, checkout_spec)

        assert credential.nonce == "nonce-abc"
        assert credential.details.payer_id == "PAYER-1"
        assert credential.details.first_name == "Ada"
        account = sent_json(httpx_mock.get_requests()[0])["paypalAccount"]
        assert account["paymentToken"] == "EC-123"
        assert account["payerId"] == "PAYER-1"
        assert account["intent"] == "authorize"
        assert account["shippingOptionId"] == "fast"
        assert account["options"] == {"validate": False}

    async def test_vault(self, bridge, vault_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/payment_methods/paypal_accounts",
            json={"paypalAccounts": [self.account]},
        )

        await bridge.exchange("BA-456", ApprovalPayload(billing_token="BA-456"), vault_spec)

        account = sent_json(httpx_mock.get_requests()[0])["paypalAccount"]
        assert account["billingToken"] == "BA-456"
        assert account["options"] == {"validate": True}
        assert "paymentToken" not in account

    async def test_vault_opt_out(self, bridge, vault_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/payment_methods/paypal_accounts",
            json={"paypalAccounts": [self.account]},
        )

        await bridge.exchange("BA-456", ApprovalPayload(billing_token="BA-456", vault=False), vault_spec)

        account = sent_json(httpx_mock.get_requests()[0])["paypalAccount"]
        assert account["options"] == {"validate": False}

    async def test_failure(self, bridge, checkout_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/payment_methods/paypal_accounts",
            status_code=500,
            text="upstream exploded",
        )

        with pytest.raises(GatewayError) as exc_info:
            await bridge.exchange("EC-123", ApprovalPayload(order_id="EC-123"), checkout_spec)

        assert exc_info.value.code == "PAYPAL_ACCOUNT_TOKENIZATION_FAILED"
        assert exc_info.value.status_code == 500


class TestClientId:
    async def test_cached(self, bridge, httpx_mock):
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v1/configuration",
            json={"paypalEnabled": True, "paypal": {"clientId": "client-xyz"}},
        )

        assert await bridge.get_client_id() == "client-xyz"
        assert await bridge.get_client_id() == "client-xyz"
        assert len(httpx_mock.get_requests()) == 1

    async def test_paypal_disabled(self, bridge, httpx_mock):
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v1/configuration",
            json={"paypalEnabled": False},
        )

        with pytest.raises(GatewayError):
            await bridge.get_client_id()


class TestMalformedResponses:
    async def test_non_json_success(self, bridge, httpx_mock):
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v1/configuration",
            text="<html>oops</html>",
        )

        with pytest.raises(GatewayError) as exc_info:
            await bridge.get_client_id()

        assert exc_info.value.code == "PAYPAL_FLOW_FAILED"
        assert exc_info.value.status_code == 200

    async def test_json_list_success(self, bridge, checkout_spec, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/payment_methods/paypal_accounts",
            json=[{"nonce": "nonce-abc"}],
        )

        with pytest.raises(GatewayError) as exc_info:
            await bridge.exchange("EC-123", ApprovalPayload(order_id="EC-123"), checkout_spec)

        assert exc_info.value.code == "PAYPAL_ACCOUNT_TOKENIZATION_FAILED"

    @pytest.mark.parametrize("body", [["not", "an", "object"], "just a string"])
    async def test_non_object_error_body(self, bridge, checkout_spec, httpx_mock, body):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/paypal_hermes/create_payment_resource",
            status_code=400,
            json=body,
        )

        with pytest.raises(GatewayError) as exc_info:
            await bridge.open_session(checkout_spec)

        assert exc_info.value.status_code == 400
        assert exc_info.value.message


class TestCheckoutOverHttp:
    async def test_full_flow(self, settings, hosted_flow, httpx_mock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/paypal_hermes/create_payment_resource",
            json={"paymentResource": {"paymentToken": "EC-123"}},
        )
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v1/payment_methods/paypal_accounts",
            json={"paypalAccounts": [TestExchange.account]},
        )
        checkout = await PayPalCheckout.create(
            authorization=TOKENIZATION_KEY,
            hosted_flow=hosted_flow,
            settings=settings,
        )

        session_id = await checkout.create_payment({"flow": "checkout", "amount": "10.00", "currency": "USD"})
        hosted_flow.approve(session_id, {"orderID": session_id, "payerID": "PAYER-1"})
        credential = await checkout.tokenize_on_approval()
        await checkout.teardown()

        assert session_id == "EC-123"
        assert credential.nonce == "nonce-abc"
        assert checkout.state == SessionState.TORN_DOWN
        assert isinstance(checkout.gateway, HttpGatewayBridge)
        assert checkout.gateway.merchant_account_id is None
