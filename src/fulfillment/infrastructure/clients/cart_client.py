"""HTTP client for the cart service."""

from __future__ import annotations

from fulfillment.domain.collaborators.cart import CartItem, CartService, CartSnapshot
from fulfillment.domain.exceptions import CollaboratorError, EntityNotFoundError, ValidationError
from fulfillment.domain.model.value_objects import DEFAULT_CURRENCY, Money
from fulfillment.infrastructure.clients.base import ServiceClient


class HttpCartService(ServiceClient, CartService):

    service_name = "cart"

    def get_cart(self, user_id: str) -> CartSnapshot:
        try:
            response = self._request(
                "GET", "/cart", idempotent=True, not_found="cart", headers=self._user(user_id)
            )
        except EntityNotFoundError:
            return CartSnapshot(user_id=user_id)
        body = self._json(response)
        currency = body.get("currency", DEFAULT_CURRENCY)
        try:
            items = [
                CartItem(
                    product_id=str(item.get("productId") or item["product_id"]),
                    quantity=int(item["quantity"]),
                    unit_price=Money.of(item["price"], currency),
                )
                for item in body.get("items") or []
            ]
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            raise CollaboratorError(self.service_name, f"malformed cart: {exc}") from exc
        return CartSnapshot(user_id=user_id, items=items)

    def clear_cart(self, user_id: str) -> None:
        try:
            self._request(
                "DELETE", "/cart", idempotent=True, not_found="cart", headers=self._user(user_id)
            )
        except EntityNotFoundError:
            pass  # nothing to clear

    @staticmethod
    def _user(user_id: str) -> dict[str, str]:
        return {"X-User-Id": user_id}
