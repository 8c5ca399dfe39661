"""Integration tests for the CancelOrder and CompleteOrder use cases.

Uses in-memory fake repositories and collaborators — no file I/O.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from fulfillment.application.cancel_order import CancelOrderHandler
from fulfillment.application.capture_payment import CapturePaymentHandler
from fulfillment.application.complete_order import CompleteOrderHandler
from fulfillment.application.create_order import CreateOrderHandler
from fulfillment.domain.collaborators.cart import CartItem
from fulfillment.domain.exceptions import (
    CollaboratorError,
    EntityNotFoundError,
    InvalidStateTransitionError,
    PaymentFailedError,
)
from fulfillment.domain.model.order import OrderStatus
from fulfillment.domain.model.payment import PaymentStatus
from fulfillment.domain.model.saga import SagaState
from fulfillment.domain.model.value_objects import Money
from tests.fakes import CUSTOMER_ADDRESS, SagaWorld, storefront


def _make_order(world: SagaWorld, payment_method: str = "cod") -> str:
    return CreateOrderHandler(
        saga=world.saga,
        saga_repo=world.sagas,
        reservation_service=world.reservation_service,
        calculator=world.calculator,
        cart=world.cart,
        catalog=world.catalog,
        pricing=world.pricing,
    ).handle("user-1", dict(CUSTOMER_ADDRESS), {}, payment_method).order_id


def _setup(payment_method: str = "cod", capture: bool = False):
    """Check out ``user-1``'s cart and return a cancel handler for the order."""
    world = storefront()
    order_id = _make_order(world, payment_method)
    if capture:
        CapturePaymentHandler(
            saga=world.saga,
            saga_repo=world.sagas,
            order_repo=world.orders,
            payment_repo=world.payments,
            gateway=world.gateway,
        ).handle(order_id, "PAYPAL-1")
    return _cancel_handler(world), world, order_id


def _cancel_handler(world: SagaWorld) -> CancelOrderHandler:
    return CancelOrderHandler(
        saga=world.saga,
        order_repo=world.orders,
        payment_repo=world.payments,
        saga_repo=world.sagas,
        reservation_service=world.reservation_service,
    )


class TestCancelPlacedOrder:

    def test_releases_stock_at_recorded_warehouses(self):
        handler, world, order_id = _setup()
        result = handler.handle(order_id)

        assert result.status == "cancelled"
        assert result.refund_error is None
        assert world.orders.get_by_id(order_id).status is OrderStatus.CANCELLED
        assert world.inventory.reserved("P1", "WH-MUM") == 0
        assert world.inventory.reserved("P2", "WH-DEL") == 0
        assert sorted(world.inventory.release_calls) == [("P1", "WH-MUM", 2), ("P2", "WH-DEL", 1)]

    def test_cancel_twice_is_a_no_op(self):
        handler, world, order_id = _setup()
        handler.handle(order_id)
        again = handler.handle(order_id)

        assert again.status == "cancelled"
        assert len(world.inventory.release_calls) == 2

    def test_completed_order_rejected(self):
        handler, world, order_id = _setup()
        CompleteOrderHandler(world.orders).handle(order_id)

        with pytest.raises(InvalidStateTransitionError, match="completed"):
            handler.handle(order_id)
        assert world.inventory.reserved("P1", "WH-MUM") == 2

    def test_unknown_order(self):
        handler, _, _ = _setup()
        with pytest.raises(EntityNotFoundError, match="not found"):
            handler.handle("no-such-order")

    def test_cod_order_never_refunded(self):
        handler, world, order_id = _setup()
        handler.handle(order_id)
        assert world.gateway.refunds == []


class TestCancelPaidOrder:

    def test_refunds_captured_payment(self):
        handler, world, order_id = _setup("paypal", capture=True)
        result = handler.handle(order_id)

        assert result.refund_error is None
        assert world.gateway.refunds == ["CAP-PAYPAL-1"]
        assert world.inventory.reserved("P1", "WH-MUM") == 0

    def test_refund_failure_reported_not_raised(self):
        handler, world, order_id = _setup("paypal", capture=True)
        world.gateway.refund_error = CollaboratorError("paypal", "refund rejected")

        result = handler.handle(order_id)

        assert result.status == "cancelled"
        assert "refund rejected" in result.refund_error
        assert world.orders.get_by_id(order_id).status is OrderStatus.CANCELLED
        assert world.inventory.reserved("P1", "WH-MUM") == 0


class TestCancelPendingCheckout:

    def test_cancels_before_payment(self):
        handler, world, order_id = _setup("paypal")
        result = handler.handle(order_id)

        assert result.status == "cancelled"
        assert world.inventory.reserved("P1", "WH-MUM") == 0
        assert world.payments.get_by_order_id(order_id).status is PaymentStatus.FAILED
        assert world.sagas.get(order_id).state is SagaState.CANCELLED
        assert world.orders.get_by_id(order_id) is None

    def test_twice_is_a_no_op(self):
        handler, world, order_id = _setup("paypal")
        handler.handle(order_id)
        assert handler.handle(order_id).status == "cancelled"
        assert len(world.inventory.release_calls) == 2

    def test_compensated_checkout_rejected(self):
        handler, world, order_id = _setup("paypal")
        world.gateway.capture_status = "DECLINED"
        with pytest.raises(PaymentFailedError):
            CapturePaymentHandler(
                saga=world.saga,
                saga_repo=world.sagas,
                order_repo=world.orders,
                payment_repo=world.payments,
                gateway=world.gateway,
            ).handle(order_id, "PAYPAL-1")

        with pytest.raises(InvalidStateTransitionError, match="compensated"):
            handler.handle(order_id)


class TestCompleteOrder:

    def test_processing_to_completed(self):
        _, world, order_id = _setup()
        assert CompleteOrderHandler(world.orders).handle(order_id) == "completed"
        assert world.orders.get_by_id(order_id).status is OrderStatus.COMPLETED

    def test_cancelled_cannot_complete(self):
        handler, world, order_id = _setup()
        handler.handle(order_id)
        with pytest.raises(InvalidStateTransitionError, match="Cannot complete"):
            CompleteOrderHandler(world.orders).handle(order_id)

    def test_unknown_order(self):
        _, world, _ = _setup()
        with pytest.raises(EntityNotFoundError):
            CompleteOrderHandler(world.orders).handle("missing")


# ── Racing callers ───────────────────────────────────────────────────────────


def _race(world: SagaWorld, *calls):
    """Run *calls* in parallel after they have all read the order."""
    world.orders.read_barrier = threading.Barrier(len(calls))
    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(call) for call in calls]
        outcomes = []
        for future in futures:
            try:
                outcomes.append(future.result(timeout=10))
            except InvalidStateTransitionError as exc:
                outcomes.append(exc)
    return outcomes


class TestConcurrentCancel:

    def test_two_cancels_release_once(self):
        handler, world, order_id = _setup()

        outcomes = _race(world, lambda: handler.handle(order_id), lambda: handler.handle(order_id))

        assert [o.status for o in outcomes] == ["cancelled", "cancelled"]
        assert sorted(world.inventory.release_calls) == [("P1", "WH-MUM", 2), ("P2", "WH-DEL", 1)]

    def test_other_orders_keep_their_stock(self):
        handler, world, order_id = _setup()
        world.cart.fill("user-1", [CartItem("P1", 2, Money.of("1000"))])
        _make_order(world)
        assert world.inventory.reserved("P1", "WH-MUM") == 4

        _race(world, lambda: handler.handle(order_id), lambda: handler.handle(order_id))

        assert world.inventory.reserved("P1", "WH-MUM") == 2
        assert world.orders.get_by_id(order_id).status is OrderStatus.CANCELLED

    def test_paid_order_refunded_once(self):
        handler, world, order_id = _setup("paypal", capture=True)

        _race(world, lambda: handler.handle(order_id), lambda: handler.handle(order_id))

        assert world.gateway.refunds == ["CAP-PAYPAL-1"]

    def test_cancel_racing_complete(self):
        handler, world, order_id = _setup()
        complete = CompleteOrderHandler(world.orders)

        outcomes = _race(world, lambda: handler.handle(order_id), lambda: complete.handle(order_id))

        rejected = [o for o in outcomes if isinstance(o, InvalidStateTransitionError)]
        assert len(rejected) == 1
        final = world.orders.get_by_id(order_id).status
        if final is OrderStatus.CANCELLED:
            assert world.inventory.reserved("P1", "WH-MUM") == 0
        else:
            assert final is OrderStatus.COMPLETED
            assert world.inventory.release_calls == []
            assert world.inventory.reserved("P1", "WH-MUM") == 2

    def test_checkout_cancelled_twice_at_once(self):
        handler, world, order_id = _setup("paypal")
        world.sagas.read_barrier = threading.Barrier(2)

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(handler.handle, order_id) for _ in range(2)]
            statuses = [f.result(timeout=10).status for f in futures]

        assert statuses == ["cancelled", "cancelled"]
        assert sorted(world.inventory.release_calls) == [("P1", "WH-MUM", 2), ("P2", "WH-DEL", 1)]
