"""Tests for the HTTP collaborator clients, using httpx.MockTransport."""

import json
from decimal import Decimal

import httpx
import pytest

from fulfillment.domain.exceptions import CollaboratorError, EntityNotFoundError
from fulfillment.domain.model.value_objects import Money
from fulfillment.infrastructure.clients.cart_client import HttpCartService
from fulfillment.infrastructure.clients.catalog_client import HttpCatalogService
from fulfillment.infrastructure.clients.paypal_gateway import PayPalGateway
from fulfillment.infrastructure.clients.pricing_client import HttpPricingService


class Recorder:
    """Serves canned responses in order and records every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _cart(recorder: Recorder) -> HttpCartService:
    return HttpCartService(
        "http://cart.test", api_key="secret", retry_backoff=0, transport=recorder.transport
    )


# ── Cart ─────────────────────────────────────────────────────────────────────


class TestHttpCartService:

    def test_reads_cart_with_service_headers(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={"items": [{"productId": "P1", "quantity": 2, "price": "999.50"}]},
            )
        )
        cart = _cart(recorder).get_cart("user-1")

        assert cart.items[0].product_id == "P1"
        assert cart.items[0].quantity == 2
        assert cart.items[0].unit_price == Money.of("999.50")
        request = recorder.requests[0]
        assert request.url.path == "/cart"
        assert request.headers["X-API-Key"] == "secret"
        assert request.headers["X-Worker-Request"] == "true"
        assert request.headers["X-User-Id"] == "user-1"

    def test_missing_cart_is_empty(self):
        recorder = Recorder(httpx.Response(404, json={"message": "no cart"}))
        assert _cart(recorder).get_cart("user-1").is_empty

    def test_idempotent_read_retried_once_on_5xx(self):
        recorder = Recorder(
            httpx.Response(503),
            httpx.Response(200, json={"items": []}),
        )
        assert _cart(recorder).get_cart("user-1").is_empty
        assert len(recorder.requests) == 2

    def test_gives_up_after_second_failure(self):
        recorder = Recorder(
            httpx.ConnectError("refused"),
            httpx.ConnectError("refused"),
        )
        with pytest.raises(CollaboratorError) as exc_info:
            _cart(recorder).get_cart("user-1")
        assert exc_info.value.transient
        assert exc_info.value.service == "cart"

    def test_timeout_is_transient(self):
        recorder = Recorder(httpx.ReadTimeout("slow"), httpx.ReadTimeout("slow"))
        with pytest.raises(CollaboratorError, match="timed out"):
            _cart(recorder).get_cart("user-1")

    def test_client_error_not_retried(self):
        recorder = Recorder(httpx.Response(400, json={"message": "bad user"}))
        with pytest.raises(CollaboratorError, match="bad user") as exc_info:
            _cart(recorder).get_cart("user-1")
        assert not exc_info.value.transient
        assert len(recorder.requests) == 1

    def test_malformed_cart(self):
        recorder = Recorder(httpx.Response(200, json={"items": [{"productId": "P1"}]}))
        with pytest.raises(CollaboratorError, match="malformed cart"):
            _cart(recorder).get_cart("user-1")

    def test_clear_cart(self):
        recorder = Recorder(httpx.Response(204), httpx.Response(404))
        client = _cart(recorder)
        client.clear_cart("user-1")
        client.clear_cart("user-1")
        assert [r.method for r in recorder.requests] == ["DELETE", "DELETE"]

    def test_no_api_key_headers_when_unset(self):
        recorder = Recorder(httpx.Response(200, json={"items": []}))
        HttpCartService("http://cart.test", transport=recorder.transport).get_cart("user-1")
        assert "X-API-Key" not in recorder.requests[0].headers


# ── Catalog and pricing ──────────────────────────────────────────────────────


class TestCatalogAndPricing:

    def test_product_info(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={"productId": "P1", "name": "Sofa", "category": "furniture", "weightKg": 40},
            )
        )
        product = HttpCatalogService("http://catalog.test", transport=recorder.transport).get_product("P1")
        assert product.name == "Sofa"
        assert product.category == "furniture"
        assert product.weight_kg == Decimal("40")
        assert recorder.requests[0].url.path == "/product/P1"

    def test_unknown_product(self):
        recorder = Recorder(httpx.Response(404))
        catalog = HttpCatalogService("http://catalog.test", transport=recorder.transport)
        with pytest.raises(EntityNotFoundError, match="Product not found"):
            catalog.get_product("P9")

    def test_price(self):
        recorder = Recorder(httpx.Response(200, json={"price": 1299, "currency": "INR"}))
        pricing = HttpPricingService("http://pricing.test", transport=recorder.transport)
        assert pricing.get_price("P1") == Money.of("1299")

    def test_price_missing_from_answer(self):
        recorder = Recorder(httpx.Response(200, json={"currency": "INR"}))
        pricing = HttpPricingService("http://pricing.test", transport=recorder.transport)
        with pytest.raises(CollaboratorError, match="no price"):
            pricing.get_price("P1")


# ── PayPal ───────────────────────────────────────────────────────────────────


def _token() -> httpx.Response:
    return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})


def _paypal(recorder: Recorder) -> PayPalGateway:
    return PayPalGateway(
        "https://paypal.test",
        client_id="client",
        client_secret="secret",
        return_url="https://shop.test/return",
        cancel_url="https://shop.test/cancel",
        retry_backoff=0,
        transport=recorder.transport,
    )


class TestPayPalGateway:

    def test_create_order(self):
        recorder = Recorder(
            _token(),
            httpx.Response(
                201,
                json={
                    "id": "PAYPAL-1",
                    "status": "CREATED",
                    "links": [
                        {"rel": "self", "href": "https://paypal.test/self"},
                        {"rel": "approve", "href": "https://paypal.test/approve"},
                    ],
                },
            ),
        )
        order = _paypal(recorder).create_order(Money.of("27.71", "USD"), "key-1")

        assert order.gateway_order_id == "PAYPAL-1"
        assert order.approval_link == "https://paypal.test/approve"
        token_request, create_request = recorder.requests
        assert token_request.url.path == "/v1/oauth2/token"
        assert create_request.headers["PayPal-Request-Id"] == "key-1"
        assert create_request.headers["Authorization"] == "Bearer tok-1"
        body = json.loads(create_request.content)
        assert body["purchase_units"][0]["amount"] == {"currency_code": "USD", "value": "27.71"}

    def test_token_cached(self):
        created = {"id": "PAYPAL-1", "links": []}
        recorder = Recorder(
            _token(), httpx.Response(201, json=created), httpx.Response(201, json=created)
        )
        gateway = _paypal(recorder)
        gateway.create_order(Money.of("1", "USD"), "key-1")
        gateway.create_order(Money.of("1", "USD"), "key-2")
        assert [r.url.path for r in recorder.requests].count("/v1/oauth2/token") == 1

    def test_capture(self):
        recorder = Recorder(
            _token(),
            httpx.Response(
                201,
                json={
                    "id": "PAYPAL-1",
                    "status": "COMPLETED",
                    "purchase_units": [{"payments": {"captures": [{"id": "CAP-9"}]}}],
                },
            ),
        )
        capture = _paypal(recorder).capture_order("PAYPAL-1", "key-1")

        assert capture.succeeded
        assert capture.capture_id == "CAP-9"
        assert recorder.requests[1].url.path == "/v2/checkout/orders/PAYPAL-1/capture"
        assert recorder.requests[1].headers["PayPal-Request-Id"] == "key-1"

    def test_capture_timeout_not_retried(self):
        recorder = Recorder(_token(), httpx.ReadTimeout("slow"))
        with pytest.raises(CollaboratorError, match="timed out"):
            _paypal(recorder).capture_order("PAYPAL-1", "key-1")
        assert len(recorder.requests) == 2

    def test_declined_capture_reports_details(self):
        recorder = Recorder(
            _token(),
            httpx.Response(
                422,
                json={"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "INSTRUMENT_DECLINED"}]},
            ),
        )
        with pytest.raises(CollaboratorError, match="INSTRUMENT_DECLINED"):
            _paypal(recorder).capture_order("PAYPAL-1", "key-1")

    def test_refund(self):
        recorder = Recorder(_token(), httpx.Response(201, json={"status": "COMPLETED"}))
        _paypal(recorder).refund_capture("CAP-9", "refund-key-1")
        refund_request = recorder.requests[1]
        assert refund_request.url.path == "/v2/payments/captures/CAP-9/refund"
        assert refund_request.headers["PayPal-Request-Id"] == "refund-key-1"
