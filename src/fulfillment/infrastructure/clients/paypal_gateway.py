"""PayPal Orders v2 implementation of PaymentGateway.

Every mutating call carries ``PayPal-Request-Id`` so PayPal deduplicates a
repeated request with the same key instead of charging twice.  The OAuth
token is cached until shortly before it expires.
"""

from __future__ import annotations

import threading
import time

import httpx
import structlog

from fulfillment.domain.collaborators.payment_gateway import (
    GatewayCapture,
    GatewayOrder,
    PaymentGateway,
)
from fulfillment.domain.exceptions import CollaboratorError
from fulfillment.domain.model.value_objects import Money
from fulfillment.infrastructure.clients.base import ServiceClient

logger = structlog.get_logger(__name__)

TOKEN_EXPIRY_MARGIN_SECONDS = 60


class PayPalGateway(ServiceClient, PaymentGateway):

    service_name = "paypal"

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        return_url: str,
        cancel_url: str,
        timeout: float = 10.0,
        retry_backoff: float = 0.2,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, retry_backoff=retry_backoff, transport=transport)
        self._client_id = client_id
        self._client_secret = client_secret
        self._return_url = return_url
        self._cancel_url = cancel_url
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    # --- PaymentGateway interface ---------------------------------------------

    def create_order(self, amount: Money, idempotency_key: str) -> GatewayOrder:
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": idempotency_key,
                    "amount": {
                        "currency_code": amount.currency,
                        "value": f"{amount.rounded().amount:.2f}",
                    },
                }
            ],
            "application_context": {
                "return_url": self._return_url,
                "cancel_url": self._cancel_url,
                "user_action": "PAY_NOW",
            },
        }
        response = self._request(
            "POST",
            "/v2/checkout/orders",
            json=payload,
            headers=self._headers(idempotency_key),
        )
        body = self._json(response)
        if "id" not in body:
            raise CollaboratorError(self.service_name, "order created without an id")
        approval = next(
            (link.get("href") for link in body.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        logger.info("PayPal order created", gateway_status=body.get("status"), amount=str(amount))
        return GatewayOrder(gateway_order_id=body["id"], approval_link=approval, raw=body)

    def capture_order(self, gateway_order_id: str, idempotency_key: str) -> GatewayCapture:
        response = self._request(
            "POST",
            f"/v2/checkout/orders/{gateway_order_id}/capture",
            json={},
            headers=self._headers(idempotency_key),
        )
        body = self._json(response)
        return GatewayCapture(
            status=str(body.get("status", "UNKNOWN")),
            capture_id=self._capture_id(body),
            raw=body,
        )

    def refund_capture(self, capture_id: str, idempotency_key: str) -> None:
        self._request(
            "POST",
            f"/v2/payments/captures/{capture_id}/refund",
            json={},
            headers=self._headers(idempotency_key),
        )

    # --- Internal helpers -----------------------------------------------------

    def _headers(self, idempotency_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token()}",
            "Content-Type": "application/json",
            "PayPal-Request-Id": idempotency_key,
        }

    def _access_token(self) -> str:
        with self._token_lock:
            if self._token is None or time.monotonic() >= self._token_expires_at:
                response = self._request(
                    "POST",
                    "/v1/oauth2/token",
                    idempotent=True,
                    data={"grant_type": "client_credentials"},
                    auth=(self._client_id, self._client_secret),
                )
                body = self._json(response)
                if not body.get("access_token"):
                    raise CollaboratorError(self.service_name, "no access token received")
                self._token = body["access_token"]
                expires_in = float(body.get("expires_in", 300))
                self._token_expires_at = (
                    time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
                )
            return self._token

    @staticmethod
    def _capture_id(body: dict) -> str | None:
        for unit in body.get("purchase_units", []):
            for capture in unit.get("payments", {}).get("captures", []):
                if capture.get("id"):
                    return capture["id"]
        return None
