"""SQL-backed implementation of InventoryRepository.

Reservation is one conditional UPDATE whose WHERE clause re-checks the
stock at write time; the affected-row count tells whether it won.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Engine, case, insert, select, update
from sqlalchemy.engine import RowMapping

from fulfillment.domain.model.inventory import InventoryRecord
from fulfillment.domain.repository.inventory_repository import InventoryRepository
from fulfillment.infrastructure.persistence.order_document import parse_timestamp
from fulfillment.infrastructure.persistence.schema import inventory


class SqlInventoryRepository(InventoryRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # --- InventoryRepository interface ----------------------------------------

    def get(self, product_id: str, warehouse_id: str) -> InventoryRecord | None:
        stmt = select(inventory).where(
            inventory.c.product_id == product_id,
            inventory.c.warehouse_id == warehouse_id,
        )
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return self._to_domain(row) if row is not None else None

    def list_for_product(self, product_id: str) -> list[InventoryRecord]:
        stmt = (
            select(inventory)
            .where(inventory.c.product_id == product_id, inventory.c.deleted_at.is_(None))
            .order_by(inventory.c.warehouse_id)
        )
        with self._engine.connect() as conn:
            return [self._to_domain(row) for row in conn.execute(stmt).mappings()]

    def list_all(self) -> list[InventoryRecord]:
        stmt = (
            select(inventory)
            .where(inventory.c.deleted_at.is_(None))
            .order_by(inventory.c.product_id, inventory.c.warehouse_id)
        )
        with self._engine.connect() as conn:
            return [self._to_domain(row) for row in conn.execute(stmt).mappings()]

    def save(self, record: InventoryRecord) -> None:
        now = datetime.now(timezone.utc)
        # reserved_quantity is owned by try_reserve/release and never overwritten here
        stmt = (
            update(inventory)
            .where(
                inventory.c.product_id == record.product_id,
                inventory.c.warehouse_id == record.warehouse_id,
            )
            .values(quantity=record.quantity, deleted_at=record.deleted_at, updated_at=now)
        )
        with self._engine.begin() as conn:
            if conn.execute(stmt).rowcount == 0:
                conn.execute(
                    insert(inventory).values(
                        product_id=record.product_id,
                        warehouse_id=record.warehouse_id,
                        quantity=record.quantity,
                        reserved_quantity=record.reserved_quantity,
                        deleted_at=record.deleted_at,
                        updated_at=now,
                    )
                )

    def try_reserve(self, product_id: str, warehouse_id: str, quantity: int) -> bool:
        stmt = (
            update(inventory)
            .where(
                inventory.c.product_id == product_id,
                inventory.c.warehouse_id == warehouse_id,
                inventory.c.deleted_at.is_(None),
                inventory.c.reserved_quantity + quantity <= inventory.c.quantity,
            )
            .values(
                reserved_quantity=inventory.c.reserved_quantity + quantity,
                updated_at=datetime.now(timezone.utc),
            )
        )
        with self._engine.begin() as conn:
            return conn.execute(stmt).rowcount == 1

    def release(self, product_id: str, warehouse_id: str, quantity: int) -> None:
        floored = case(
            (inventory.c.reserved_quantity > quantity, inventory.c.reserved_quantity - quantity),
            else_=0,
        )
        stmt = (
            update(inventory)
            .where(
                inventory.c.product_id == product_id,
                inventory.c.warehouse_id == warehouse_id,
            )
            .values(reserved_quantity=floored, updated_at=datetime.now(timezone.utc))
        )
        with self._engine.begin() as conn:
            conn.execute(stmt)

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_domain(row: RowMapping) -> InventoryRecord:
        deleted_at = row["deleted_at"]
        return InventoryRecord(
            product_id=row["product_id"],
            warehouse_id=row["warehouse_id"],
            quantity=row["quantity"],
            reserved_quantity=row["reserved_quantity"],
            deleted_at=parse_timestamp(deleted_at) if deleted_at is not None else None,
        )
