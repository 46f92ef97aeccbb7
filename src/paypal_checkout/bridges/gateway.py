"""Gateway bridge implementations."""
from __future__ import annotations

import base64
import binascii
import json
import logging
import uuid
from typing import Any, Optional

import httpx

from paypal_checkout.bridges.base import GatewayBridge
from paypal_checkout.errors import GatewayError, InstantiationOptionRequired
from paypal_checkout.logging import mask_value
from paypal_checkout.models import (
    ApprovalPayload,
    Credential,
    Flow,
    PayerDetails,
    ValidatedSpec,
)

logger = logging.getLogger(__name__)

OPEN_FAILED = "PAYPAL_FLOW_FAILED"
TOKENIZATION_FAILED = "PAYPAL_ACCOUNT_TOKENIZATION_FAILED"

# Placeholders required by the gateway; the hosted flow never follows them
RETURN_URL = "https://www.paypal.com/checkoutnow/error"
CANCEL_URL = "https://www.paypal.com/checkoutnow/error"

API_VERSION = "2018-05-10"


def parse_authorization(authorization: str, gateway_url: str) -> tuple[str, str]:
    """
    Resolve the client API base URL and bearer credential.

    Tokenization keys look like ``<env>_<random>_<merchantId>``; client tokens
    are base64 JSON carrying ``configUrl`` and ``authorizationFingerprint``.

    Returns:
        (client API base URL, bearer credential)
    """
    parts = authorization.split("_")
    if len(parts) >= 3 and parts[0] in ("sandbox", "production", "development"):
        merchant_id = parts[-1]
        return f"{gateway_url}/{merchant_id}/client_api", authorization

    try:
        decoded = json.loads(base64.b64decode(authorization, validate=True))
    except (binascii.Error, ValueError):
        raise InstantiationOptionRequired(
            "authorization is neither a tokenization key nor a client token",
            field="authorization",
        ) from None

    config_url = decoded.get("configUrl", "")
    fingerprint = decoded.get("authorizationFingerprint", "")
    if not config_url or not fingerprint:
        raise InstantiationOptionRequired(
            "client token is missing configUrl or authorizationFingerprint",
            field="authorization",
        )
    base_url = config_url.rsplit("/v1/configuration", 1)[0]
    return base_url, fingerprint


class HttpGatewayBridge(GatewayBridge):
    """Gateway bridge speaking the Braintree client API over HTTP."""

    def __init__(
        self,
        base_url: str,
        authorization: str,
        merchant_account_id: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.merchant_account_id = merchant_account_id
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url + "/",
            headers={
                "Authorization": f"Bearer {authorization}",
                "Braintree-Version": API_VERSION,
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )
        self._configuration: Optional[dict[str, Any]] = None

    async def _request(
        self,
        method: str,
        path: str,
        error_code: str,
        json_body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Make a single HTTP request; failures become GatewayError."""
        try:
            response = await self._client.request(method, path, json=json_body)
        except httpx.RequestError as e:
            logger.error("Gateway request %s %s failed: %s", method, path, e)
            raise GatewayError(
                f"Gateway request failed: {e}",
                code=error_code,
            ) from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            if not isinstance(body, dict):
                body = {"error": {"message": response.text}}
            error = body.get("error", {})
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.error(
                "Gateway returned %s for %s %s", response.status_code, method, path
            )
            raise GatewayError(
                message or f"Gateway returned HTTP {response.status_code}",
                status_code=response.status_code,
                code=error_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error("Gateway returned a non-JSON body for %s %s", method, path)
            raise GatewayError(
                "Gateway response is not a JSON object",
                status_code=response.status_code,
                code=error_code,
            )
        return data

    async def get_configuration(self) -> dict[str, Any]:
        if self._configuration is None:
            self._configuration = await self._request(
                "GET", "v1/configuration", error_code=OPEN_FAILED
            )
        return self._configuration

    async def get_client_id(self) -> str:
        configuration = await self.get_configuration()
        client_id = (configuration.get("paypal") or {}).get("clientId")
        if not client_id:
            raise GatewayError("PayPal is not enabled for this merchant", code=OPEN_FAILED)
        return client_id

    def _session_body(self, spec: ValidatedSpec) -> dict[str, Any]:
        experience_profile: dict[str, Any] = {
            "noShipping": str(not spec.enable_shipping_address).lower(),
            "addressOverride": spec.shipping_address_editable is False,
        }
        if spec.display_name:
            experience_profile["brandName"] = spec.display_name
        if spec.locale:
            experience_profile["localeCode"] = spec.locale.value
        if spec.landing_page_type:
            experience_profile["landingPageType"] = spec.landing_page_type.value

        body: dict[str, Any] = {
            "returnUrl": RETURN_URL,
            "cancelUrl": CANCEL_URL,
            "offerPaypalCredit": spec.offer_credit is True,
            "experienceProfile": experience_profile,
        }
        if self.merchant_account_id:
            body["merchantAccountId"] = self.merchant_account_id
        if spec.shipping_address_override:
            body.update(spec.shipping_address_override.to_dict())
        if spec.line_items:
            body["lineItems"] = [item.to_dict() for item in spec.line_items]

        if spec.flow == Flow.CHECKOUT:
            body["amount"] = str(spec.amount)
            body["currencyIsoCode"] = spec.currency
            body["intent"] = spec.intent.value if spec.intent else None
            if spec.shipping_options:
                body["shippingOptions"] = [option.to_dict() for option in spec.shipping_options]
            if spec.vault_initiated_checkout_payment_method_token:
                body["vaultInitiatedCheckoutPaymentMethodToken"] = (
                    spec.vault_initiated_checkout_payment_method_token
                )
            if spec.billing_agreement_description:
                body["billingAgreementDescription"] = spec.billing_agreement_description
        else:
            if spec.billing_agreement_description:
                body["description"] = spec.billing_agreement_description
            if spec.shipping_options:
                body["shippingOptions"] = [option.to_dict() for option in spec.shipping_options]
        return body

    async def open_session(self, spec: ValidatedSpec) -> str:
        body = self._session_body(spec)
        if spec.flow == Flow.VAULT:
            data = await self._request(
                "POST", "v1/paypal_hermes/setup_billing_agreement", OPEN_FAILED, body
            )
            session_id = (data.get("agreementSetup") or {}).get("tokenId")
        else:
            data = await self._request(
                "POST", "v1/paypal_hermes/create_payment_resource", OPEN_FAILED, body
            )
            session_id = (data.get("paymentResource") or {}).get("paymentToken")

        if not session_id:
            raise GatewayError("Gateway response did not include a session token", code=OPEN_FAILED)
        logger.info("Opened %s session %s", spec.flow.value, mask_value(session_id))
        return session_id

    async def exchange(
        self,
        session_id: str,
        payload: ApprovalPayload,
        spec: Optional[ValidatedSpec] = None,
    ) -> Credential:
        is_vault = spec is not None and spec.flow == Flow.VAULT
        account: dict[str, Any] = {
            "correlationId": payload.billing_token or session_id,
            "options": {"validate": is_vault and payload.vault is not False},
        }
        if is_vault:
            account["billingToken"] = payload.billing_token or session_id
        else:
            account["paymentToken"] = payload.payment_id or payload.order_id or session_id
            account["payerId"] = payload.payer_id
            account["unilateral"] = False
            if spec is not None and spec.intent is not None:
                account["intent"] = spec.intent.value
        if payload.shipping_option_id:
            account["shippingOptionId"] = payload.shipping_option_id

        body: dict[str, Any] = {"paypalAccount": account}
        if self.merchant_account_id:
            body["merchantAccountId"] = self.merchant_account_id

        data = await self._request(
            "POST", "v1/payment_methods/paypal_accounts", TOKENIZATION_FAILED, body
        )
        accounts = data.get("paypalAccounts") or []
        if not accounts or not accounts[0].get("nonce"):
            raise GatewayError("Gateway response did not include a nonce", code=TOKENIZATION_FAILED)
        return credential_from_account(accounts[0])

    async def close(self) -> None:
        """Close HTTP client."""
        if self._owns_client:
            await self._client.aclose()


def credential_from_account(account: dict[str, Any]) -> Credential:
    """Build a Credential from a gateway ``paypalAccounts`` entry."""
    details = account.get("details") or {}
    payer_info = details.get("payerInfo") or {}
    return Credential(
        nonce=account["nonce"],
        type=account.get("type", "PayPalAccount"),
        details=PayerDetails.model_validate(payer_info),
        credit_financing_offered=details.get("creditFinancingOffered"),
    )


class InMemoryGatewayBridge(GatewayBridge):
    """
    In-memory gateway for development and testing.

    Issues ``EC-``/``BA-`` tokens and random nonces, records every call, and
    can be primed with an error to raise on the next open or exchange.
    """

    def __init__(self, client_id: str = "sandbox-client-id"):
        self.client_id = client_id
        self.open_calls: list[ValidatedSpec] = []
        self.exchange_calls: list[tuple[str, ApprovalPayload]] = []
        self.open_error: Optional[GatewayError] = None
        self.exchange_error: Optional[GatewayError] = None
        self.payer = PayerDetails(
            email="buyer@example.com",
            payer_id="PAYER123",
            first_name="Test",
            last_name="Buyer",
            country_code="US",
        )
        self.closed = False

    async def open_session(self, spec: ValidatedSpec) -> str:
        self.open_calls.append(spec)
        if self.open_error is not None:
            error, self.open_error = self.open_error, None
            raise error
        prefix = "BA" if spec.flow == Flow.VAULT else "EC"
        return f"{prefix}-{uuid.uuid4().hex[:17].upper()}"

    async def exchange(
        self,
        session_id: str,
        payload: ApprovalPayload,
        spec: Optional[ValidatedSpec] = None,
    ) -> Credential:
        self.exchange_calls.append((session_id, payload))
        if self.exchange_error is not None:
            error, self.exchange_error = self.exchange_error, None
            raise error
        details = self.payer
        if payload.payer_id:
            details = details.model_copy(update={"payer_id": payload.payer_id})
        return Credential(nonce=f"fake-paypal-nonce-{uuid.uuid4()}", details=details)

    async def get_client_id(self) -> str:
        return self.client_id

    async def close(self) -> None:
        self.closed = True
