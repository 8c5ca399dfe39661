"""JSON-file-backed implementation of WarehouseRepository.

The warehouse directory changes rarely and is edited by admin tooling, so
it ships as a single document loaded once per process::

    {
      "warehouses": [
        {"warehouse_id": "WH-MUM-01", "name": "...", "pincode": "400001",
         "city": "Mumbai", "state": "Maharashtra", "is_active": true,
         "coverage": [{"pincode": "400050", "standard_available": true,
                       "express_available": true}]}
      ],
      "shipping_rules": [
        {"warehouse_id": "WH-MUM-01", "category": "electronics",
         "standard": {"base_cost": "40", "per_kg_cost": "10", "estimated_days": 4},
         "express":  {"base_cost": "120", "per_kg_cost": "20", "estimated_days": 1,
                      "available": true}}
      ]
    }
"""

from __future__ import annotations

import json
import threading
from decimal import Decimal
from pathlib import Path

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.warehouse import (
    PincodeCoverage,
    ShippingRate,
    ShippingRule,
    Warehouse,
)
from fulfillment.domain.repository.warehouse_repository import WarehouseRepository


class JsonWarehouseRepository(WarehouseRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._lock = threading.Lock()
        self._warehouses: dict[str, Warehouse] | None = None
        self._rules: dict[tuple[str, str | None], ShippingRule] = {}
        self._ensure_file()

    # --- WarehouseRepository interface ----------------------------------------

    def get(self, warehouse_id: str) -> Warehouse | None:
        return self._directory().get(warehouse_id)

    def list_active(self) -> list[Warehouse]:
        return sorted(
            (w for w in self._directory().values() if w.is_active),
            key=lambda w: w.warehouse_id,
        )

    def get_shipping_rule(self, warehouse_id: str, category: str | None) -> ShippingRule | None:
        self._directory()
        return self._rules.get((warehouse_id, _normalise(category)))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _warehouse_to_domain(raw: dict) -> Warehouse:
        coverage = {
            str(c["pincode"]): PincodeCoverage(
                pincode=str(c["pincode"]),
                standard_available=bool(c.get("standard_available", True)),
                express_available=bool(c.get("express_available", True)),
            )
            for c in raw.get("coverage", [])
        }
        return Warehouse(
            warehouse_id=raw["warehouse_id"],
            name=raw["name"],
            pincode=str(raw["pincode"]),
            city=raw["city"],
            state=raw["state"],
            is_active=bool(raw.get("is_active", True)),
            coverage=coverage,
        )

    @staticmethod
    def _rate_to_domain(raw: dict) -> ShippingRate:
        return ShippingRate(
            base_cost=Decimal(str(raw.get("base_cost", "0"))),
            per_kg_cost=Decimal(str(raw.get("per_kg_cost", "0"))),
            estimated_days=int(raw["estimated_days"]),
            available=bool(raw.get("available", True)),
        )

    def _rule_to_domain(self, raw: dict) -> ShippingRule:
        return ShippingRule(
            warehouse_id=raw["warehouse_id"],
            category=_normalise(raw.get("category")),
            standard=self._rate_to_domain(raw["standard"]),
            express=self._rate_to_domain(raw["express"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _directory(self) -> dict[str, Warehouse]:
        with self._lock:
            if self._warehouses is None:
                raw = self._load_raw()
                try:
                    warehouses = [self._warehouse_to_domain(w) for w in raw.get("warehouses", [])]
                    rules = [self._rule_to_domain(r) for r in raw.get("shipping_rules", [])]
                except (KeyError, TypeError, ValueError, ArithmeticError, ValidationError) as exc:
                    raise ValidationError(
                        f"Malformed warehouse directory {self._file_path}: {exc}"
                    ) from exc
                self._rules = {(r.warehouse_id, r.category): r for r in rules}
                self._warehouses = {w.warehouse_id: w for w in warehouses}
            return self._warehouses

    def _load_raw(self) -> dict:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(
                json.dumps({"warehouses": [], "shipping_rules": []}, indent=2) + "\n",
                encoding="utf-8",
            )


def _normalise(category: str | None) -> str | None:
    return category.strip().lower() if category else None
