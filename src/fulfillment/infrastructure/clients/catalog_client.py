"""HTTP client for the catalog service."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from fulfillment.domain.collaborators.catalog import CatalogService, ProductInfo
from fulfillment.domain.exceptions import CollaboratorError
from fulfillment.infrastructure.clients.base import ServiceClient


class HttpCatalogService(ServiceClient, CatalogService):

    service_name = "catalog"

    def get_product(self, product_id: str) -> ProductInfo:
        response = self._request(
            "GET",
            f"/product/{product_id}",
            idempotent=True,
            not_found=f"Product not found: '{product_id}'",
        )
        body = self._json(response)
        weight = body.get("weightKg", body.get("weight"))
        try:
            weight_kg = Decimal(str(weight)) if weight is not None else None
        except InvalidOperation as exc:
            raise CollaboratorError(self.service_name, f"bad weight {weight!r}") from exc
        return ProductInfo(
            product_id=str(body.get("productId", product_id)),
            name=body.get("name") or "Product",
            category=body.get("category"),
            weight_kg=weight_kg,
        )
