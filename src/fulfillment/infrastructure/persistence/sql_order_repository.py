"""SQL-backed implementation of OrderRepository."""

from __future__ import annotations

from sqlalchemy import Engine, insert, select, update
from sqlalchemy.exc import IntegrityError

from fulfillment.domain.exceptions import EntityNotFoundError, OrderAlreadyExistsError
from fulfillment.domain.model.order import Order, OrderStatus
from fulfillment.domain.repository.order_repository import OrderRepository
from fulfillment.infrastructure.persistence.order_document import (
    order_from_document,
    order_to_document,
)
from fulfillment.infrastructure.persistence.schema import orders


class SqlOrderRepository(OrderRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # --- OrderRepository interface --------------------------------------------

    def get_by_id(self, order_id: str) -> Order | None:
        stmt = select(orders.c.snapshot).where(orders.c.order_id == order_id)
        with self._engine.connect() as conn:
            snapshot = conn.execute(stmt).scalar_one_or_none()
        return order_from_document(snapshot) if snapshot is not None else None

    def list_by_user(self, user_id: str, status: OrderStatus | None = None) -> list[Order]:
        stmt = select(orders.c.snapshot).where(orders.c.user_id == user_id)
        if status is not None:
            stmt = stmt.where(orders.c.status == status.value)
        stmt = stmt.order_by(orders.c.created_at.desc())
        with self._engine.connect() as conn:
            return [order_from_document(snapshot) for snapshot in conn.execute(stmt).scalars()]

    def add(self, order: Order) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(orders).values(order_id=order.id, **self._to_row(order)))
        except IntegrityError as exc:
            raise OrderAlreadyExistsError(f"Order {order.id} already exists") from exc

    def save(self, order: Order) -> None:
        stmt = update(orders).where(orders.c.order_id == order.id).values(**self._to_row(order))
        with self._engine.begin() as conn:
            if conn.execute(stmt).rowcount == 0:
                raise EntityNotFoundError(f"Order {order.id} not found")

    def save_if_status(self, order: Order, expected: OrderStatus) -> bool:
        stmt = (
            update(orders)
            .where(orders.c.order_id == order.id, orders.c.status == expected.value)
            .values(**self._to_row(order))
        )
        with self._engine.begin() as conn:
            return conn.execute(stmt).rowcount == 1

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_row(order: Order) -> dict:
        return {
            "user_id": order.user.user_id,
            "status": order.status.value,
            "payment_method": order.payment_method.value,
            "total_amount": order.total.amount,
            "currency": order.currency,
            "schema_version": order.schema_version,
            "snapshot": order_to_document(order),
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }
