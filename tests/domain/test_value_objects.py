"""Unit tests for domain value objects."""

from decimal import Decimal

import pytest

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.value_objects import (
    Address,
    Destination,
    Money,
    PaymentMethod,
    Quantity,
    ShippingMode,
)


# ── Money ────────────────────────────────────────────────────────────────────


class TestMoney:

    def test_creation_defaults_to_inr(self):
        m = Money(Decimal("10.50"))
        assert m.amount == Decimal("10.50")
        assert m.currency == "INR"

    def test_of_factory_from_string(self):
        assert Money.of("25.99").amount == Decimal("25.99")

    def test_of_factory_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid money amount"):
            Money.of("ten")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Money(Decimal("-1"))

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError, match="must be a Decimal"):
            Money(10.5)

    def test_addition(self):
        assert Money.of("10") + Money.of("5.50") == Money.of("15.50")

    def test_multiplication_by_int(self):
        assert Money.of("7.50") * 3 == Money.of("22.50")

    def test_currency_mismatch_rejected(self):
        with pytest.raises(ValidationError, match="Cannot combine"):
            Money.of("10", "INR") + Money.of("5", "USD")

    def test_str_formatting(self):
        assert str(Money.of("15")) == "INR 15.00"
        assert str(Money.of("9.5", "USD")) == "USD 9.50"

    def test_rounded_half_up(self):
        assert Money.of("10.005").rounded().amount == Decimal("10.01")

    def test_convert_divides_by_rate(self):
        converted = Money.of("830").convert("USD", Decimal("83"))
        assert converted == Money.of("10.00", "USD")

    def test_convert_rejects_zero_rate(self):
        with pytest.raises(ValidationError, match="must be positive"):
            Money.of("10").convert("USD", Decimal("0"))


# ── Quantity ─────────────────────────────────────────────────────────────────


class TestQuantity:

    def test_positive(self):
        assert Quantity(3).value == 3

    @pytest.mark.parametrize("value", [0, -2])
    def test_non_positive_rejected(self, value):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(value)

    def test_bool_rejected(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(True)


# ── Enums ────────────────────────────────────────────────────────────────────


class TestShippingMode:

    def test_parse_is_case_insensitive(self):
        assert ShippingMode.parse(" Express ") is ShippingMode.EXPRESS

    def test_parse_unknown(self):
        with pytest.raises(ValidationError, match="Unknown shipping mode"):
            ShippingMode.parse("overnight")


class TestPaymentMethod:

    def test_cod_skips_gateway(self):
        assert not PaymentMethod.parse("COD").uses_gateway

    @pytest.mark.parametrize("raw", ["card", "paypal"])
    def test_online_methods_use_gateway(self, raw):
        assert PaymentMethod.parse(raw).uses_gateway

    def test_parse_unknown(self):
        with pytest.raises(ValidationError, match="Unknown payment method"):
            PaymentMethod.parse("cheque")


# ── Address ──────────────────────────────────────────────────────────────────


def _raw_address(**overrides) -> dict:
    raw = {
        "street": "12 Marine Drive",
        "city": "Mumbai",
        "state": "Maharashtra",
        "pincode": "400001",
    }
    raw.update(overrides)
    return raw


class TestAddress:

    def test_from_dict(self):
        address = Address.from_dict(_raw_address())
        assert address.pincode == "400001"
        assert address.country == "India"

    def test_zip_code_alias(self):
        raw = _raw_address()
        raw["zipCode"] = raw.pop("pincode")
        assert Address.from_dict(raw).pincode == "400001"

    def test_unknown_fields_dropped(self):
        address = Address.from_dict(_raw_address(isAdmin=True, note="leave at door"))
        assert set(address.to_dict()) == {"street", "city", "state", "pincode", "country"}

    @pytest.mark.parametrize("pincode", ["40001", "4000011", "040001", "40A001", ""])
    def test_invalid_pincode_rejected(self, pincode):
        with pytest.raises(ValidationError, match="6-digit"):
            Address.from_dict(_raw_address(pincode=pincode))

    def test_blank_city_rejected(self):
        with pytest.raises(ValidationError, match="city is required"):
            Address.from_dict(_raw_address(city="  "))

    def test_non_dict_rejected(self):
        with pytest.raises(ValidationError, match="must be an object"):
            Address.from_dict("400001")

    def test_destination_of(self):
        destination = Destination.of(Address.from_dict(_raw_address()))
        assert destination == Destination(pincode="400001", state="Maharashtra", city="Mumbai")
