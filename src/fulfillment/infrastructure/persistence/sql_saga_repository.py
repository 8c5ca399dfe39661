"""SQL-backed implementation of SagaRepository."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Engine, insert, select, update
from sqlalchemy.engine import RowMapping

from fulfillment.domain.model.saga import Reservation, SagaRun, SagaState
from fulfillment.domain.model.value_objects import PaymentMethod
from fulfillment.domain.repository.saga_repository import SagaRepository
from fulfillment.infrastructure.persistence.order_document import (
    order_from_document,
    order_to_document,
    parse_timestamp,
)
from fulfillment.infrastructure.persistence.schema import saga_runs

SAGA_SCHEMA_VERSION = 1


class SqlSagaRepository(SagaRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # --- SagaRepository interface ---------------------------------------------

    def get(self, saga_id: str) -> SagaRun | None:
        stmt = select(saga_runs).where(saga_runs.c.saga_id == saga_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return self._to_domain(row) if row is not None else None

    def save(self, run: SagaRun) -> None:
        row = self._to_row(run)
        stmt = update(saga_runs).where(saga_runs.c.saga_id == run.saga_id).values(**row)
        with self._engine.begin() as conn:
            if conn.execute(stmt).rowcount == 0:
                conn.execute(insert(saga_runs).values(saga_id=run.saga_id, **row))

    def transition(self, saga_id: str, expected: SagaState, new: SagaState) -> bool:
        stmt = (
            update(saga_runs)
            .where(saga_runs.c.saga_id == saga_id, saga_runs.c.state == expected.value)
            .values(state=new.value, updated_at=datetime.now(timezone.utc))
        )
        with self._engine.begin() as conn:
            return conn.execute(stmt).rowcount == 1

    def list_expired(self, now: datetime) -> list[SagaRun]:
        stmt = (
            select(saga_runs)
            .where(
                saga_runs.c.state == SagaState.PAYMENT_PENDING.value,
                saga_runs.c.expires_at.is_not(None),
                saga_runs.c.expires_at <= now.astimezone(timezone.utc),
            )
            .order_by(saga_runs.c.expires_at)
        )
        with self._engine.connect() as conn:
            return [self._to_domain(row) for row in conn.execute(stmt).mappings()]

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_row(run: SagaRun) -> dict:
        return {
            "user_id": run.user_id,
            "payment_method": run.payment_method.value,
            "state": run.state.value,
            "schema_version": SAGA_SCHEMA_VERSION,
            "document": {
                "reservations": [
                    {
                        "product_id": r.product_id,
                        "warehouse_id": r.warehouse_id,
                        "quantity": r.quantity,
                    }
                    for r in run.reservations
                ],
                "draft_order": (
                    order_to_document(run.draft_order) if run.draft_order is not None else None
                ),
                "payment_id": run.payment_id,
                "gateway_order_id": run.gateway_order_id,
                "idempotency_key": run.idempotency_key,
                "failure_reason": run.failure_reason,
            },
            "expires_at": run.expires_at,
            "created_at": run.created_at,
            "updated_at": run.updated_at,
        }

    @staticmethod
    def _to_domain(row: RowMapping) -> SagaRun:
        doc = row["document"]
        draft = doc.get("draft_order")
        return SagaRun(
            saga_id=row["saga_id"],
            user_id=row["user_id"],
            payment_method=PaymentMethod(row["payment_method"]),
            state=SagaState(row["state"]),
            reservations=[
                Reservation(r["product_id"], r["warehouse_id"], r["quantity"])
                for r in doc.get("reservations", [])
            ],
            draft_order=order_from_document(draft) if draft is not None else None,
            payment_id=doc.get("payment_id"),
            gateway_order_id=doc.get("gateway_order_id"),
            idempotency_key=doc.get("idempotency_key"),
            failure_reason=doc.get("failure_reason"),
            expires_at=(
                parse_timestamp(row["expires_at"]) if row["expires_at"] is not None else None
            ),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )
