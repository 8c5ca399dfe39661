"""Unit tests for the Order aggregate, Payment and SagaRun."""

from datetime import datetime, timedelta, timezone

import pytest

from fulfillment.domain.exceptions import InvalidStateTransitionError, ValidationError
from fulfillment.domain.model.order import (
    MAX_LINE_ITEMS,
    Order,
    OrderLineItem,
    OrderStatus,
    UserSnapshot,
)
from fulfillment.domain.model.payment import Payment, PaymentStatus
from fulfillment.domain.model.saga import SagaRun, SagaState
from fulfillment.domain.model.value_objects import (
    Address,
    Money,
    PaymentMethod,
    Quantity,
    ShippingMode,
)

ADDRESS = Address("12 Marine Drive", "Mumbai", "Maharashtra", "400001")


def _item(
    product_id: str = "P1",
    quantity: int = 2,
    price: str = "100",
    mode: ShippingMode = ShippingMode.STANDARD,
    shipping: str = "50",
    days: int = 5,
    currency: str = "INR",
) -> OrderLineItem:
    return OrderLineItem(
        product_id=product_id,
        product_name=f"Product {product_id}",
        quantity=Quantity(quantity),
        unit_price=Money.of(price, currency),
        warehouse_id="WH-MUM",
        shipping_mode=mode,
        shipping_cost=Money.of(shipping, currency),
        estimated_days=days,
    )


def _order(items=None, status=OrderStatus.PROCESSING) -> Order:
    return Order.create(
        order_id="order-1",
        user=UserSnapshot("user-1", "Asha", "asha@example.com"),
        address=ADDRESS,
        items=items or [_item()],
        payment_method=PaymentMethod.COD,
        status=status,
    )


# ── Order creation ───────────────────────────────────────────────────────────


class TestCreateOrder:

    def test_totals(self):
        order = _order([_item("P1", 2, "100", shipping="50"), _item("P2", 1, "30", shipping="70")])
        assert order.subtotal == Money.of("230")
        assert order.shipping.total_cost == Money.of("120")
        assert order.total == Money.of("350")
        assert order.status is OrderStatus.PROCESSING

    def test_shipping_snapshot_single_mode(self):
        order = _order([_item("P1", days=3), _item("P2", days=7)])
        assert order.shipping.mode == "standard"
        assert order.shipping.estimated_days == 7

    def test_shipping_snapshot_mixed(self):
        order = _order([_item("P1"), _item("P2", mode=ShippingMode.EXPRESS)])
        assert order.shipping.mode == "mixed"

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            Order.create("order-1", UserSnapshot("user-1"), ADDRESS, [], PaymentMethod.COD)

    def test_too_many_items_rejected(self):
        items = [_item(f"P{i}") for i in range(MAX_LINE_ITEMS + 1)]
        with pytest.raises(ValidationError, match="Maximum"):
            _order(items)

    def test_duplicate_products_rejected(self):
        with pytest.raises(ValidationError, match="only once"):
            _order([_item("P1"), _item("P1")])

    def test_mixed_currencies_rejected(self):
        with pytest.raises(ValidationError, match="mixes currencies"):
            _order([_item("P1"), _item("P2", currency="USD")])

    def test_blank_user_rejected(self):
        with pytest.raises(ValidationError, match="User id"):
            Order.create("order-1", UserSnapshot(" "), ADDRESS, [_item()], PaymentMethod.COD)


# ── Order transitions ────────────────────────────────────────────────────────


class TestOrderTransitions:

    def test_complete(self):
        order = _order()
        order.complete()
        assert order.status is OrderStatus.COMPLETED

    def test_complete_pending_rejected(self):
        order = _order(status=OrderStatus.PENDING)
        with pytest.raises(InvalidStateTransitionError, match="Cannot complete"):
            order.complete()

    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.PROCESSING])
    def test_cancel(self, status):
        order = _order(status=status)
        order.cancel()
        assert order.status is OrderStatus.CANCELLED

    def test_cancel_twice_rejected(self):
        order = _order()
        order.cancel()
        with pytest.raises(InvalidStateTransitionError, match="already cancelled"):
            order.cancel()

    def test_cancel_completed_rejected(self):
        order = _order()
        order.complete()
        assert not order.can_cancel
        with pytest.raises(InvalidStateTransitionError, match="completed"):
            order.cancel()

    def test_fail_keeps_order(self):
        order = _order()
        order.fail()
        assert order.status is OrderStatus.FAILED
        with pytest.raises(InvalidStateTransitionError):
            order.cancel()


# ── Payment ──────────────────────────────────────────────────────────────────


def _payment() -> Payment:
    return Payment(
        id="pay-1",
        order_id="order-1",
        encrypted_gateway_order_id="enc:xyz",
        amount=Money.of("10", "USD"),
        idempotency_key="key-1",
    )


class TestPayment:

    def test_complete(self):
        payment = _payment()
        payment.complete("CAP-1", {"status": "COMPLETED"})
        assert payment.status is PaymentStatus.COMPLETED
        assert payment.capture_id == "CAP-1"
        assert payment.raw_gateway_payload == {"status": "COMPLETED"}

    def test_fail_is_idempotent(self):
        payment = _payment()
        payment.fail({"error": "timeout"})
        payment.fail()
        assert payment.status is PaymentStatus.FAILED
        assert payment.raw_gateway_payload == {"error": "timeout"}

    def test_completed_cannot_fail(self):
        payment = _payment()
        payment.complete("CAP-1", {})
        with pytest.raises(InvalidStateTransitionError):
            payment.fail()


# ── SagaRun ──────────────────────────────────────────────────────────────────


class TestSagaRun:

    def test_gateway_path(self):
        run = SagaRun("order-1", "user-1", PaymentMethod.PAYPAL)
        for state in (
            SagaState.STOCK_RESERVED,
            SagaState.PAYMENT_PENDING,
            SagaState.CAPTURING,
            SagaState.PAYMENT_CAPTURED,
            SagaState.ORDER_PERSISTED,
            SagaState.CART_CLEARED,
            SagaState.COMPLETED,
        ):
            run.advance(state)
        assert run.state.is_terminal

    def test_cod_skips_payment(self):
        run = SagaRun("order-1", "user-1", PaymentMethod.COD)
        run.advance(SagaState.STOCK_RESERVED)
        run.advance(SagaState.ORDER_PERSISTED)
        run.advance(SagaState.COMPLETED)
        assert run.state is SagaState.COMPLETED

    def test_skipping_a_step_rejected(self):
        run = SagaRun("order-1", "user-1", PaymentMethod.COD)
        with pytest.raises(InvalidStateTransitionError, match="cannot move"):
            run.advance(SagaState.ORDER_PERSISTED)

    def test_compensated_records_reason(self):
        run = SagaRun("order-1", "user-1", PaymentMethod.COD)
        run.advance(SagaState.STOCK_RESERVED)
        run.compensated("out of stock")
        assert run.state is SagaState.COMPENSATED
        assert run.failure_reason == "out of stock"
        with pytest.raises(InvalidStateTransitionError, match="already finished"):
            run.compensated("again")

    def test_cancel_only_before_payment(self):
        run = SagaRun("order-1", "user-1", PaymentMethod.PAYPAL)
        run.advance(SagaState.STOCK_RESERVED)
        run.advance(SagaState.PAYMENT_PENDING)
        assert run.awaiting_payment
        run.cancel()
        assert run.state is SagaState.CANCELLED

        captured = SagaRun("order-2", "user-1", PaymentMethod.PAYPAL)
        captured.advance(SagaState.STOCK_RESERVED)
        captured.advance(SagaState.PAYMENT_PENDING)
        captured.advance(SagaState.CAPTURING)
        assert captured.payment_in_flight
        with pytest.raises(InvalidStateTransitionError, match="Cannot cancel checkout"):
            captured.cancel()

    def test_cancel_before_payment_starts_rejected(self):
        run = SagaRun("order-1", "user-1", PaymentMethod.PAYPAL)
        run.advance(SagaState.STOCK_RESERVED)
        with pytest.raises(InvalidStateTransitionError, match="stock_reserved"):
            run.cancel()


class TestCheckoutDeadline:

    def _pending(self) -> SagaRun:
        run = SagaRun("order-1", "user-1", PaymentMethod.PAYPAL)
        run.advance(SagaState.STOCK_RESERVED)
        run.advance(SagaState.PAYMENT_PENDING)
        run.hold_for(timedelta(minutes=15))
        return run

    def test_hold_sets_deadline(self):
        before = datetime.now(timezone.utc)
        run = self._pending()
        assert before + timedelta(minutes=15) <= run.expires_at
        assert run.expires_at <= datetime.now(timezone.utc) + timedelta(minutes=15)

    def test_not_expired_before_deadline(self):
        run = self._pending()
        assert not run.is_expired()
        assert not run.is_expired(run.expires_at - timedelta(seconds=1))

    def test_expired_at_deadline(self):
        run = self._pending()
        assert run.is_expired(run.expires_at)
        assert run.is_expired(run.expires_at + timedelta(hours=1))

    def test_claimed_run_never_expires(self):
        run = self._pending()
        run.advance(SagaState.CAPTURING)
        assert not run.is_expired(run.expires_at + timedelta(hours=1))

    def test_cod_run_has_no_deadline(self):
        run = SagaRun("order-1", "user-1", PaymentMethod.COD)
        run.advance(SagaState.STOCK_RESERVED)
        assert run.expires_at is None
        assert not run.is_expired()
        assert not run.payment_in_flight
