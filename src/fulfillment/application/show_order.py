"""Application service: Show Order and List Orders use cases (queries)."""

from __future__ import annotations

from fulfillment.application.dto import OrderDTO, OrderLineItemDTO
from fulfillment.domain.exceptions import EntityNotFoundError, ValidationError
from fulfillment.domain.model.order import Order, OrderStatus
from fulfillment.domain.repository.order_repository import OrderRepository
from fulfillment.domain.repository.saga_repository import SagaRepository


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository, saga_repo: SagaRepository) -> None:
        self._order_repo = order_repo
        self._saga_repo = saga_repo

    def handle(self, order_id: str) -> OrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is not None:
            return order_to_dto(order)

        # A gateway checkout awaiting approval is shown from its draft.
        run = self._saga_repo.get(order_id)
        if run is not None and run.payment_in_flight and run.draft_order is not None:
            return order_to_dto(run.draft_order, status=OrderStatus.PENDING)
        raise EntityNotFoundError(f"Order {order_id} not found")


class ListOrdersHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, user_id: str, status: str | None = None) -> list[OrderDTO]:
        wanted = None
        if status:
            try:
                wanted = OrderStatus(status.strip().lower())
            except ValueError as exc:
                raise ValidationError(f"Unknown order status {status!r}") from exc
        return [order_to_dto(order) for order in self._order_repo.list_by_user(user_id, wanted)]


def order_to_dto(order: Order, status: OrderStatus | None = None) -> OrderDTO:
    return OrderDTO(
        id=order.id,
        user_id=order.user.user_id,
        status=(status or order.status).value,
        payment_method=order.payment_method.value,
        items=[
            OrderLineItemDTO(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity.value,
                unit_price=str(item.unit_price),
                line_total=str(item.line_total),
                warehouse_id=item.warehouse_id,
                shipping_mode=item.shipping_mode.value,
                shipping_cost=str(item.shipping_cost),
                estimated_days=item.estimated_days,
            )
            for item in order.items
        ],
        subtotal=str(order.subtotal),
        shipping_total=str(order.shipping.total_cost),
        total=str(order.total),
        shipping_address=order.address.to_dict(),
        created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
    )
