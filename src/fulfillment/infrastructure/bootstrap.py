"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from sqlalchemy import Engine
from sqlalchemy.engine import make_url

from fulfillment.application.cancel_order import CancelOrderHandler
from fulfillment.application.capture_payment import CapturePaymentHandler
from fulfillment.application.complete_order import CompleteOrderHandler
from fulfillment.application.create_order import CreateOrderHandler
from fulfillment.application.expire_checkouts import ExpireCheckoutsHandler
from fulfillment.application.order_saga import OrderSaga
from fulfillment.application.quote_shipping import QuoteShippingHandler
from fulfillment.application.set_inventory import SetInventoryHandler
from fulfillment.application.show_inventory import ShowInventoryHandler
from fulfillment.application.show_order import ListOrdersHandler, ShowOrderHandler
from fulfillment.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from fulfillment.domain.service.shipping_calculator import ShippingCalculator
from fulfillment.domain.service.warehouse_allocator import WarehouseAllocator
from fulfillment.infrastructure.clients.cart_client import HttpCartService
from fulfillment.infrastructure.clients.catalog_client import HttpCatalogService
from fulfillment.infrastructure.clients.paypal_gateway import PayPalGateway
from fulfillment.infrastructure.clients.pricing_client import HttpPricingService
from fulfillment.infrastructure.config import Settings, get_settings
from fulfillment.infrastructure.crypto import FernetCipher
from fulfillment.infrastructure.persistence.json_warehouse_repository import (
    JsonWarehouseRepository,
)
from fulfillment.infrastructure.persistence.schema import build_engine, create_schema
from fulfillment.infrastructure.persistence.sql_inventory_repository import (
    SqlInventoryRepository,
)
from fulfillment.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from fulfillment.infrastructure.persistence.sql_payment_repository import (
    SqlPaymentRepository,
)
from fulfillment.infrastructure.persistence.sql_saga_repository import SqlSagaRepository


def settings() -> Settings:
    return get_settings()


# --- Storage -----------------------------------------------------------------


@lru_cache()
def engine() -> Engine:
    url = settings().database_url
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    db = build_engine(url)
    create_schema(db)
    return db


def inventory_repository() -> SqlInventoryRepository:
    return SqlInventoryRepository(engine())


def order_repository() -> SqlOrderRepository:
    return SqlOrderRepository(engine())


def payment_repository() -> SqlPaymentRepository:
    return SqlPaymentRepository(engine())


def saga_repository() -> SqlSagaRepository:
    return SqlSagaRepository(engine())


@lru_cache()
def warehouse_repository() -> JsonWarehouseRepository:
    return JsonWarehouseRepository(settings().warehouses_file)


# --- Collaborators -----------------------------------------------------------
#
# One client per collaborator for the life of the process; close_clients()
# releases their connection pools.


def _client_options() -> dict:
    s = settings()
    return {"timeout": s.http_timeout_seconds, "retry_backoff": s.retry_backoff_seconds}


@lru_cache()
def cart_service() -> HttpCartService:
    s = settings()
    return HttpCartService(s.cart_service_url, s.inter_service_api_key, **_client_options())


@lru_cache()
def catalog_service() -> HttpCatalogService:
    s = settings()
    return HttpCatalogService(s.catalog_service_url, s.inter_service_api_key, **_client_options())


@lru_cache()
def pricing_service() -> HttpPricingService:
    s = settings()
    return HttpPricingService(s.pricing_service_url, s.inter_service_api_key, **_client_options())


@lru_cache()
def payment_gateway() -> PayPalGateway:
    s = settings()
    return PayPalGateway(
        s.paypal_base_url,
        client_id=s.paypal_client_id,
        client_secret=s.paypal_client_secret,
        return_url=s.paypal_return_url,
        cancel_url=s.paypal_cancel_url,
        **_client_options(),
    )


@lru_cache()
def cipher() -> FernetCipher:
    s = settings()
    return FernetCipher(s.encryption_secret, s.encryption_salt)


def close_clients() -> None:
    for factory in (cart_service, catalog_service, pricing_service, payment_gateway):
        if factory.cache_info().currsize:
            factory().close()
        factory.cache_clear()


# --- Domain services ---------------------------------------------------------


def warehouse_allocator() -> WarehouseAllocator:
    return WarehouseAllocator(warehouse_repository(), inventory_repository())


def reservation_service() -> InventoryReservationService:
    return InventoryReservationService(inventory_repository(), warehouse_allocator())


def shipping_calculator() -> ShippingCalculator:
    return ShippingCalculator(warehouse_repository(), settings().default_unit_weight_kg)


def order_saga() -> OrderSaga:
    s = settings()
    return OrderSaga(
        saga_repo=saga_repository(),
        order_repo=order_repository(),
        payment_repo=payment_repository(),
        reservation_service=reservation_service(),
        cart=cart_service(),
        gateway=payment_gateway(),
        cipher=cipher(),
        gateway_currency=s.paypal_currency,
        conversion_rate=s.gateway_conversion_rate,
        checkout_ttl=timedelta(minutes=s.checkout_ttl_minutes),
    )


# --- Use cases ---------------------------------------------------------------


def quote_shipping_handler() -> QuoteShippingHandler:
    return QuoteShippingHandler(
        allocator=warehouse_allocator(),
        calculator=shipping_calculator(),
        catalog=catalog_service(),
        max_workers=settings().quote_workers,
    )


def create_order_handler() -> CreateOrderHandler:
    return CreateOrderHandler(
        saga=order_saga(),
        saga_repo=saga_repository(),
        reservation_service=reservation_service(),
        calculator=shipping_calculator(),
        cart=cart_service(),
        catalog=catalog_service(),
        pricing=pricing_service(),
    )


def capture_payment_handler() -> CapturePaymentHandler:
    return CapturePaymentHandler(
        saga=order_saga(),
        saga_repo=saga_repository(),
        order_repo=order_repository(),
        payment_repo=payment_repository(),
        gateway=payment_gateway(),
    )


def cancel_order_handler() -> CancelOrderHandler:
    return CancelOrderHandler(
        saga=order_saga(),
        order_repo=order_repository(),
        payment_repo=payment_repository(),
        saga_repo=saga_repository(),
        reservation_service=reservation_service(),
    )


def expire_checkouts_handler() -> ExpireCheckoutsHandler:
    return ExpireCheckoutsHandler(order_saga(), saga_repository())


def complete_order_handler() -> CompleteOrderHandler:
    return CompleteOrderHandler(order_repository())


def show_order_handler() -> ShowOrderHandler:
    return ShowOrderHandler(order_repository(), saga_repository())


def list_orders_handler() -> ListOrdersHandler:
    return ListOrdersHandler(order_repository())


def set_inventory_handler() -> SetInventoryHandler:
    return SetInventoryHandler(inventory_repository(), warehouse_repository())


def show_inventory_handler() -> ShowInventoryHandler:
    return ShowInventoryHandler(inventory_repository())
