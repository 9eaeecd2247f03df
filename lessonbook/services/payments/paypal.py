from __future__ import annotations

from decimal import Decimal
import logging
import threading
import time
from typing import Any
from urllib.parse import quote

import httpx

from ...config import Settings
from ...core.constants import MANUAL_ORDER_PREFIX
from ...core.errors import PaymentGatewayError
from .gateway import BasePaymentGateway, PaymentCapture, PaymentOrder, format_amount

logger = logging.getLogger(__name__)

SANDBOX_API = "https://api-m.sandbox.paypal.com"
LIVE_API = "https://api-m.paypal.com"


class PayPalGateway(BasePaymentGateway):
    """PayPal Orders v2 integration.

    Without API credentials but with a PayPal.me username configured, orders
    degrade to ``MANUAL_<booking number>`` ids carrying a paypal.me link; those
    can only be settled by a manual payment confirmation.
    """

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        super().__init__(settings)
        self._client = client
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    @property
    def api_base_url(self) -> str:
        return SANDBOX_API if self.settings.paypal_sandbox else LIVE_API

    @property
    def is_api_configured(self) -> bool:
        return bool(self.settings.paypal_client_id and self.settings.paypal_secret)

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.payment_timeout_seconds)
        return self._client

    def paypal_me_link(self, amount: Decimal, booking_number: str, description: str) -> str | None:
        username = self.settings.paypal_me_username
        if not username:
            return None
        currency = self.settings.payment_currency.upper()
        note = quote(f"{booking_number} - {description}")
        return f"https://paypal.me/{username}/{format_amount(amount)}{currency}?description={note}"

    def _access_token(self) -> str:
        with self._token_lock:
            if self._token and self._token_expires_at > time.monotonic():
                return self._token
            try:
                response = self._http().post(
                    f"{self.api_base_url}/v1/oauth2/token",
                    auth=(self.settings.paypal_client_id, self.settings.paypal_secret),
                    data={"grant_type": "client_credentials"},
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise PaymentGatewayError("PayPal authentication failed") from exc
            payload = response.json()
            self._token = payload["access_token"]
            self._token_expires_at = time.monotonic() + max(int(payload.get("expires_in", 0)) - 60, 0)
            return self._token

    def _post(self, path: str, body: dict[str, Any] | None, expected_status: int) -> dict[str, Any]:
        token = self._access_token()
        try:
            response = self._http().post(
                f"{self.api_base_url}{path}",
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise PaymentGatewayError(f"PayPal request failed: {exc}") from exc
        if response.status_code != expected_status:
            logger.warning(
                "Unexpected PayPal response",
                extra={"path": path, "status_code": response.status_code},
            )
            raise PaymentGatewayError(f"PayPal responded with {response.status_code}")
        return response.json()

    def create_order(
        self, amount: Decimal, booking_number: str, description: str
    ) -> PaymentOrder:
        if not self.is_api_configured:
            link = self.paypal_me_link(amount, booking_number, description)
            if link:
                return PaymentOrder(order_id=f"{MANUAL_ORDER_PREFIX}{booking_number}", approval_url=link)
            raise PaymentGatewayError("PayPal is not configured")

        logger.info(
            "Creating PayPal order",
            extra={"booking_number": booking_number, "amount": str(amount)},
        )
        payload = self._post(
            "/v2/checkout/orders",
            {
                "intent": "CAPTURE",
                "purchase_units": [
                    {
                        "reference_id": booking_number,
                        "description": description,
                        "amount": {
                            "currency_code": self.settings.payment_currency.upper(),
                            "value": format_amount(amount),
                        },
                    }
                ],
                "application_context": {
                    "brand_name": self.settings.payment_brand_name,
                    "landing_page": "BILLING",
                    "user_action": "PAY_NOW",
                    "return_url": self.settings.payment_return_url,
                    "cancel_url": self.settings.payment_cancel_url,
                },
            },
            expected_status=201,
        )
        approval_url = next(
            (link["href"] for link in payload.get("links", []) if link.get("rel") == "approve"),
            None,
        )
        return PaymentOrder(order_id=payload["id"], approval_url=approval_url)

    def capture(self, order_id: str) -> PaymentCapture:
        if order_id.startswith(MANUAL_ORDER_PREFIX):
            raise PaymentGatewayError("This payment must be confirmed manually")
        if not self.is_api_configured:
            raise PaymentGatewayError("PayPal is not configured")
        payload = self._post(f"/v2/checkout/orders/{order_id}/capture", None, expected_status=201)
        transaction_id = None
        units = payload.get("purchase_units") or []
        if units:
            captures = (units[0].get("payments") or {}).get("captures") or []
            if captures:
                transaction_id = captures[0].get("id")
        return PaymentCapture(order_id=order_id, transaction_id=transaction_id)

    def handle_return_url(self, url: str) -> PaymentCapture:
        return self.capture(self.order_id_from_return_url(url))
