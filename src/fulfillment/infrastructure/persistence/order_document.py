"""Versioned JSON documents for the Order aggregate.

Shared by the order table (the committed snapshot) and the saga table
(the draft that a pending gateway checkout will commit).
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from fulfillment.domain.exceptions import ConsistencyViolationError
from fulfillment.domain.model.order import (
    ORDER_SCHEMA_VERSION,
    Order,
    OrderLineItem,
    OrderStatus,
    ShippingSnapshot,
    UserSnapshot,
)
from fulfillment.domain.model.value_objects import (
    Address,
    Money,
    PaymentMethod,
    Quantity,
    ShippingMode,
)


def order_to_document(order: Order) -> dict:
    return {
        "schema_version": order.schema_version,
        "id": order.id,
        "user": order.user.to_dict(),
        "address": order.address.to_dict(),
        "payment_method": order.payment_method.value,
        "status": order.status.value,
        "created_at": order.created_at.isoformat(),
        "updated_at": order.updated_at.isoformat(),
        "shipping": {
            "mode": order.shipping.mode,
            "total_cost": str(order.shipping.total_cost.amount),
            "currency": order.shipping.total_cost.currency,
            "estimated_days": order.shipping.estimated_days,
        },
        "items": [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity.value,
                "unit_price": str(item.unit_price.amount),
                "currency": item.unit_price.currency,
                "warehouse_id": item.warehouse_id,
                "shipping_mode": item.shipping_mode.value,
                "shipping_cost": str(item.shipping_cost.amount),
                "estimated_days": item.estimated_days,
            }
            for item in order.items
        ],
    }


def order_from_document(raw: dict) -> Order:
    version = raw.get("schema_version")
    if version != ORDER_SCHEMA_VERSION:
        raise ConsistencyViolationError(
            f"Order {raw.get('id')} has unsupported schema version {version}"
        )
    items = [
        OrderLineItem(
            product_id=i["product_id"],
            product_name=i["product_name"],
            quantity=Quantity(i["quantity"]),
            unit_price=Money(Decimal(i["unit_price"]), i["currency"]),
            warehouse_id=i["warehouse_id"],
            shipping_mode=ShippingMode(i["shipping_mode"]),
            shipping_cost=Money(Decimal(i["shipping_cost"]), i["currency"]),
            estimated_days=i["estimated_days"],
        )
        for i in raw["items"]
    ]
    shipping = raw["shipping"]
    return Order(
        id=raw["id"],
        user=UserSnapshot.from_dict(raw["user"]),
        address=Address.from_dict(raw["address"]),
        items=items,
        shipping=ShippingSnapshot(
            mode=shipping["mode"],
            total_cost=Money(Decimal(shipping["total_cost"]), shipping["currency"]),
            estimated_days=shipping["estimated_days"],
        ),
        payment_method=PaymentMethod(raw["payment_method"]),
        status=OrderStatus(raw["status"]),
        created_at=parse_timestamp(raw["created_at"]),
        updated_at=parse_timestamp(raw["updated_at"]),
        schema_version=version,
    )


def parse_timestamp(value: str | datetime) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
