"""Application service: Quote Shipping use case (query).

Answers "where would this ship from, and what would each mode cost?" for
a batch of products going to one address.  Nothing is reserved.

Repeated product ids are merged first so allocation and pricing run once
per product.  Products are then quoted in parallel on a small thread pool;
a domain error for one product is reported in that product's entry and
does not fail the batch.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import structlog

from fulfillment.application.dto import ModeQuoteDTO, QuoteItemSpec, ShippingOptionsDTO
from fulfillment.domain.collaborators.catalog import CatalogService
from fulfillment.domain.exceptions import DomainException, ValidationError
from fulfillment.domain.model.value_objects import Destination, ShippingMode
from fulfillment.domain.service.shipping_calculator import ShippingCalculator, ShippingQuote
from fulfillment.domain.service.warehouse_allocator import WarehouseAllocator

logger = structlog.get_logger(__name__)

DEFAULT_MAX_WORKERS = 4


class QuoteShippingHandler:

    def __init__(
        self,
        allocator: WarehouseAllocator,
        calculator: ShippingCalculator,
        catalog: CatalogService,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._allocator = allocator
        self._calculator = calculator
        self._catalog = catalog
        self._max_workers = max_workers

    def handle(
        self,
        items: list[QuoteItemSpec],
        destination: Destination | None,
    ) -> dict[str, ShippingOptionsDTO]:
        merged = self._merge(items)
        if not merged:
            return {}

        if destination is None or not destination.pincode:
            return {spec.product_id: self._default_options(spec) for spec in merged}

        workers = min(self._max_workers, len(merged))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda spec: self._quote_one(spec, destination), merged))
        return {result.product_id: result for result in results}

    # --- Per-product work -----------------------------------------------------

    def _quote_one(self, spec: QuoteItemSpec, destination: Destination) -> ShippingOptionsDTO:
        try:
            product = self._catalog.get_product(spec.product_id)
            category = spec.category or product.category
            allocation = self._allocator.allocate(spec.product_id, spec.quantity, destination)
        except DomainException as exc:
            logger.info("Shipping quote failed", product_id=spec.product_id, error=str(exc))
            return ShippingOptionsDTO(
                product_id=spec.product_id, quantity=spec.quantity, error=str(exc)
            )

        options: dict[str, ModeQuoteDTO] = {}
        for mode in ShippingMode:
            try:
                quote = self._calculator.quote(
                    allocation.warehouse,
                    category,
                    allocation.zone,
                    mode,
                    spec.quantity,
                    customer_pincode=destination.pincode,
                    unit_weight_kg=product.weight_kg,
                )
            except ValidationError as exc:
                options[mode.value] = ModeQuoteDTO(available=False, reason=str(exc))
            else:
                options[mode.value] = self._mode_dto(quote)

        return ShippingOptionsDTO(
            product_id=spec.product_id,
            quantity=spec.quantity,
            warehouse_id=allocation.warehouse_id,
            zone=int(allocation.zone),
            options=options,
        )

    def _default_options(self, spec: QuoteItemSpec) -> ShippingOptionsDTO:
        return ShippingOptionsDTO(
            product_id=spec.product_id,
            quantity=spec.quantity,
            options={
                mode.value: self._mode_dto(self._calculator.default_quote(mode, spec.quantity))
                for mode in ShippingMode
            },
        )

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _merge(items: list[QuoteItemSpec]) -> list[QuoteItemSpec]:
        merged: dict[str, QuoteItemSpec] = {}
        for item in items:
            if item.quantity <= 0:
                raise ValidationError(f"Quantity for {item.product_id} must be positive")
            seen = merged.get(item.product_id)
            if seen is None:
                merged[item.product_id] = item
            else:
                merged[item.product_id] = QuoteItemSpec(
                    product_id=item.product_id,
                    quantity=seen.quantity + item.quantity,
                    category=seen.category or item.category,
                )
        return list(merged.values())

    @staticmethod
    def _mode_dto(quote: ShippingQuote) -> ModeQuoteDTO:
        return ModeQuoteDTO(
            available=True,
            cost=str(quote.cost),
            estimated_days=quote.estimated_days,
        )
