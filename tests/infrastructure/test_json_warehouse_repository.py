"""Tests for the JSON-file warehouse directory."""

import json
from decimal import Decimal
from pathlib import Path

import pytest

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.value_objects import ShippingMode
from fulfillment.infrastructure.persistence.json_warehouse_repository import (
    JsonWarehouseRepository,
)

SAMPLE_DIRECTORY = Path(__file__).resolve().parents[2] / "data" / "warehouses.json"


def _write(path: Path, document: dict) -> Path:
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestJsonWarehouseRepository:

    def test_missing_file_created_empty(self, tmp_path):
        path = tmp_path / "nested" / "warehouses.json"
        repo = JsonWarehouseRepository(path)

        assert path.exists()
        assert repo.list_active() == []

    def test_loads_warehouses_and_coverage(self, tmp_path):
        path = _write(
            tmp_path / "w.json",
            {
                "warehouses": [
                    {
                        "warehouse_id": "WH-B",
                        "name": "B",
                        "pincode": 110001,
                        "city": "Delhi",
                        "state": "Delhi",
                    },
                    {
                        "warehouse_id": "WH-A",
                        "name": "A",
                        "pincode": "400001",
                        "city": "Mumbai",
                        "state": "Maharashtra",
                        "coverage": [{"pincode": "411001", "express_available": False}],
                    },
                    {
                        "warehouse_id": "WH-C",
                        "name": "C",
                        "pincode": "560001",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "is_active": False,
                    },
                ],
            },
        )
        repo = JsonWarehouseRepository(path)

        assert [w.warehouse_id for w in repo.list_active()] == ["WH-A", "WH-B"]
        assert repo.get("WH-B").pincode == "110001"
        mumbai = repo.get("WH-A")
        assert mumbai.serves("411001")
        assert not mumbai.offers("411001", ShippingMode.EXPRESS)
        assert mumbai.offers("411001", ShippingMode.STANDARD)
        assert repo.get("WH-C") is not None
        assert repo.get("WH-Z") is None

    def test_rules_by_category_case_insensitive(self, tmp_path):
        path = _write(
            tmp_path / "w.json",
            {
                "warehouses": [],
                "shipping_rules": [
                    {
                        "warehouse_id": "WH-A",
                        "category": "Electronics",
                        "standard": {"base_cost": "40", "per_kg_cost": "10", "estimated_days": 4},
                        "express": {"base_cost": 120, "estimated_days": 1, "available": False},
                    }
                ],
            },
        )
        repo = JsonWarehouseRepository(path)

        rule = repo.get_shipping_rule("WH-A", "electronics")
        assert rule.standard.per_kg_cost == Decimal("10")
        assert rule.express.per_kg_cost == Decimal("0")
        assert not rule.express.available
        assert repo.get_shipping_rule("WH-A", "books") is None

    @pytest.mark.parametrize(
        "document",
        [
            {"warehouses": [{"warehouse_id": "WH-A"}]},
            {
                "shipping_rules": [
                    {
                        "warehouse_id": "WH-A",
                        "standard": {"base_cost": "abc", "estimated_days": 1},
                        "express": {"estimated_days": 1},
                    }
                ]
            },
            {
                "shipping_rules": [
                    {
                        "warehouse_id": "WH-A",
                        "standard": {"estimated_days": 0},
                        "express": {"estimated_days": 1},
                    }
                ]
            },
        ],
    )
    def test_malformed_directory(self, tmp_path, document):
        repo = JsonWarehouseRepository(_write(tmp_path / "w.json", document))
        with pytest.raises(ValidationError, match="Malformed warehouse directory"):
            repo.list_active()

    def test_sample_directory_loads(self):
        repo = JsonWarehouseRepository(SAMPLE_DIRECTORY)
        ids = [w.warehouse_id for w in repo.list_active()]
        assert "WH-MUM-01" in ids
        assert "WH-BLR-01" not in ids
