"""SQLAlchemy Core table definitions.

Orders and saga runs keep their nested data (line items, address, draft
order) in a JSON column next to a ``schema_version`` so the shape of the
document can evolve without guessing.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Engine,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    event,
)

metadata = MetaData()

inventory = Table(
    "inventory",
    metadata,
    Column("product_id", String(64), primary_key=True),
    Column("warehouse_id", String(64), primary_key=True),
    Column("quantity", Integer, nullable=False, default=0),
    Column("reserved_quantity", Integer, nullable=False, default=0),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("quantity >= 0", name="ck_inventory_quantity"),
    CheckConstraint(
        "reserved_quantity >= 0 AND reserved_quantity <= quantity",
        name="ck_inventory_reserved",
    ),
)

orders = Table(
    "orders",
    metadata,
    Column("order_id", String(64), primary_key=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("status", String(16), nullable=False, index=True),
    Column("payment_method", String(16), nullable=False),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("schema_version", Integer, nullable=False),
    Column("snapshot", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

payments = Table(
    "payments",
    metadata,
    Column("payment_id", String(64), primary_key=True),
    Column("order_id", String(64), nullable=False, index=True),
    Column("encrypted_gateway_order_id", String(512), nullable=False),
    Column("status", String(16), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("idempotency_key", String(64), nullable=False, unique=True),
    Column("capture_id", String(128), nullable=True),
    Column("raw_gateway_payload", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

saga_runs = Table(
    "saga_runs",
    metadata,
    Column("saga_id", String(64), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("payment_method", String(16), nullable=False),
    Column("state", String(32), nullable=False, index=True),
    Column("schema_version", Integer, nullable=False),
    Column("document", JSON, nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=True, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite gets a busy timeout so writers queue up."""
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection, _record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_engine(url, pool_pre_ping=True)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)
