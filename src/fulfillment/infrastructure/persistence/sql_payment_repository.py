"""SQL-backed implementation of PaymentRepository."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Engine, insert, select, update
from sqlalchemy.engine import RowMapping

from fulfillment.domain.model.payment import Payment, PaymentStatus
from fulfillment.domain.model.value_objects import Money
from fulfillment.domain.repository.payment_repository import PaymentRepository
from fulfillment.infrastructure.persistence.order_document import parse_timestamp
from fulfillment.infrastructure.persistence.schema import payments


class SqlPaymentRepository(PaymentRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # --- PaymentRepository interface ------------------------------------------

    def get_by_id(self, payment_id: str) -> Payment | None:
        return self._first(select(payments).where(payments.c.payment_id == payment_id))

    def get_by_order_id(self, order_id: str) -> Payment | None:
        stmt = (
            select(payments)
            .where(payments.c.order_id == order_id)
            .order_by(payments.c.created_at.desc())
        )
        return self._first(stmt)

    def save(self, payment: Payment) -> None:
        row = self._to_row(payment)
        stmt = update(payments).where(payments.c.payment_id == payment.id).values(**row)
        with self._engine.begin() as conn:
            if conn.execute(stmt).rowcount == 0:
                conn.execute(insert(payments).values(payment_id=payment.id, **row))

    # --- Mapping --------------------------------------------------------------

    def _first(self, stmt) -> Payment | None:
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return self._to_domain(row) if row is not None else None

    @staticmethod
    def _to_row(payment: Payment) -> dict:
        return {
            "order_id": payment.order_id,
            "encrypted_gateway_order_id": payment.encrypted_gateway_order_id,
            "status": payment.status.value,
            "amount": payment.amount.amount,
            "currency": payment.amount.currency,
            "idempotency_key": payment.idempotency_key,
            "capture_id": payment.capture_id,
            "raw_gateway_payload": payment.raw_gateway_payload,
            "created_at": payment.created_at,
            "updated_at": payment.updated_at,
        }

    @staticmethod
    def _to_domain(row: RowMapping) -> Payment:
        return Payment(
            id=row["payment_id"],
            order_id=row["order_id"],
            encrypted_gateway_order_id=row["encrypted_gateway_order_id"],
            amount=Money(Decimal(str(row["amount"])), row["currency"]),
            idempotency_key=row["idempotency_key"],
            status=PaymentStatus(row["status"]),
            capture_id=row["capture_id"],
            raw_gateway_payload=row["raw_gateway_payload"] or {},
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )
