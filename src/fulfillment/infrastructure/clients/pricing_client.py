"""HTTP client for the pricing service."""

from __future__ import annotations

from fulfillment.domain.collaborators.pricing import PricingService
from fulfillment.domain.exceptions import CollaboratorError, ValidationError
from fulfillment.domain.model.value_objects import DEFAULT_CURRENCY, Money
from fulfillment.infrastructure.clients.base import ServiceClient


class HttpPricingService(ServiceClient, PricingService):

    service_name = "pricing"

    def get_price(self, product_id: str) -> Money:
        response = self._request(
            "GET",
            f"/product/{product_id}",
            idempotent=True,
            not_found=f"No price for product '{product_id}'",
        )
        body = self._json(response)
        if "price" not in body:
            raise CollaboratorError(self.service_name, f"no price in answer for {product_id}")
        try:
            return Money.of(body["price"], body.get("currency") or DEFAULT_CURRENCY)
        except ValidationError as exc:
            raise CollaboratorError(self.service_name, str(exc)) from exc
