"""Application service: Create Order (checkout) use case.

Turns the user's cart into an order.  This is the only place that
coordinates the cart, catalog and pricing collaborators with stock
reservation:

1. Validate the request (address, shipping modes, payment method).
2. Read the cart; re-price every line and reject stale prices.
3. Reserve stock for every line (all or nothing) and price shipping.
4. COD: persist the order and clear the cart right away.
   Gateway: create a payment intent and return its approval link; the
   order is persisted later by ``CapturePaymentHandler``.

Any failure unwinds whatever was committed, in reverse order.
"""

from __future__ import annotations

import uuid

import structlog

from fulfillment.application.compensation import CompensationStack
from fulfillment.application.dto import CheckoutResultDTO
from fulfillment.application.order_saga import OrderSaga
from fulfillment.domain.collaborators.cart import CartService, CartSnapshot
from fulfillment.domain.collaborators.catalog import CatalogService, ProductInfo
from fulfillment.domain.collaborators.pricing import PricingService
from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.order import Order, OrderLineItem, OrderStatus, UserSnapshot
from fulfillment.domain.model.saga import SagaRun, SagaState
from fulfillment.domain.model.value_objects import (
    Address,
    Destination,
    Money,
    PaymentMethod,
    Quantity,
    ShippingMode,
)
from fulfillment.domain.repository.saga_repository import SagaRepository
from fulfillment.domain.service.inventory_reservation_service import (
    InventoryReservationService,
    ReservedLine,
)
from fulfillment.domain.service.shipping_calculator import ShippingCalculator

logger = structlog.get_logger(__name__)


class CreateOrderHandler:

    def __init__(
        self,
        saga: OrderSaga,
        saga_repo: SagaRepository,
        reservation_service: InventoryReservationService,
        calculator: ShippingCalculator,
        cart: CartService,
        catalog: CatalogService,
        pricing: PricingService,
    ) -> None:
        self._saga = saga
        self._saga_repo = saga_repo
        self._reservation_service = reservation_service
        self._calculator = calculator
        self._cart = cart
        self._catalog = catalog
        self._pricing = pricing

    def handle(
        self,
        user_id: str,
        address: Address | dict,
        item_shipping_modes: dict[str, str],
        payment_method: str,
        user_snapshot: UserSnapshot | None = None,
    ) -> CheckoutResultDTO:
        # --- Validate input (nothing else from the request is kept) ---------
        if not user_id or not str(user_id).strip():
            raise ValidationError("User id is required")
        if not isinstance(address, Address):
            address = Address.from_dict(address)
        method = PaymentMethod.parse(payment_method)
        modes = {pid: ShippingMode.parse(mode) for pid, mode in (item_shipping_modes or {}).items()}
        user = user_snapshot or UserSnapshot(user_id=user_id)

        # --- Cart snapshot and price lock -----------------------------------
        cart = self._cart.get_cart(user_id)
        if cart.is_empty:
            raise ValidationError("Cart is empty")
        lines = self._price_lines(cart)

        order_id = str(uuid.uuid4())
        run = SagaRun(saga_id=order_id, user_id=user_id, payment_method=method)
        self._saga_repo.save(run)
        log = logger.bind(saga_id=order_id, user_id=user_id, payment_method=method.value)
        log.info("Checkout started", line_count=len(lines))

        compensations = CompensationStack(order_id)
        try:
            reserved = self._reservation_service.reserve_all(
                [(product.product_id, quantity) for product, quantity, _ in lines],
                Destination.of(address),
            )
            run.reservations = [line.reservation for line in reserved]
            compensations.push("release_stock", lambda: self._saga.release_stock(run))

            run.draft_order = Order.create(
                order_id=order_id,
                user=user,
                address=address,
                items=self._line_items(lines, reserved, modes, address),
                payment_method=method,
                status=OrderStatus.PROCESSING,
            )
            run.advance(SagaState.STOCK_RESERVED)
            self._saga_repo.save(run)
            log.info("Stock reserved", warehouses=sorted({r.warehouse_id for r in run.reservations}))

            if method.uses_gateway:
                link = self._saga.start_payment(run, compensations)
                return CheckoutResultDTO(
                    order_id=order_id,
                    status="pending",
                    payment_approval_link=link,
                )

            order = self._saga.commit(run, compensations)
        except Exception as exc:
            self._saga.abort(run, compensations, exc)
            raise

        return CheckoutResultDTO(order_id=order.id, status=order.status.value)

    # --- Internal helpers -----------------------------------------------------

    def _price_lines(self, cart: CartSnapshot) -> list[tuple[ProductInfo, int, Money]]:
        """Merge repeated cart lines and lock each at the current price."""
        quantities: dict[str, int] = {}
        cart_prices: dict[str, Money] = {}
        for item in cart.items:
            if item.quantity <= 0:
                raise ValidationError(f"Invalid quantity for product {item.product_id}")
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
            cart_prices.setdefault(item.product_id, item.unit_price)

        lines: list[tuple[ProductInfo, int, Money]] = []
        for product_id, quantity in quantities.items():
            product = self._catalog.get_product(product_id)
            current = self._pricing.get_price(product_id)
            if cart_prices[product_id] != current:
                raise ValidationError(
                    f"Price of {product.name} changed from {cart_prices[product_id]} "
                    f"to {current}; please review your cart"
                )
            lines.append((product, quantity, current))
        return lines

    def _line_items(
        self,
        lines: list[tuple[ProductInfo, int, Money]],
        reserved: list[ReservedLine],
        modes: dict[str, ShippingMode],
        address: Address,
    ) -> list[OrderLineItem]:
        items: list[OrderLineItem] = []
        for (product, quantity, price), line in zip(lines, reserved):
            mode = modes.get(product.product_id, ShippingMode.STANDARD)
            quote = self._calculator.quote(
                line.allocation.warehouse,
                product.category,
                line.allocation.zone,
                mode,
                quantity,
                customer_pincode=address.pincode,
                unit_weight_kg=product.weight_kg,
            )
            items.append(
                OrderLineItem(
                    product_id=product.product_id,
                    product_name=product.name,
                    quantity=Quantity(quantity),
                    unit_price=price,  # <-- price lock
                    warehouse_id=line.allocation.warehouse_id,
                    shipping_mode=mode,
                    shipping_cost=quote.cost,
                    estimated_days=quote.estimated_days,
                )
            )
        return items
