from __future__ import annotations

from tableside.application.ports.publisher import EventPublisher
from tableside.application.ports.repositories import OrderRepository, OrderRowNotFoundError
from tableside.application.use_cases.change_events import publish_order_change
from tableside.application.use_cases.context import TraceContext
from tableside.application.use_cases.get_order import OrderNotFoundError
from tableside.domain.common.ids import OrderId
from tableside.domain.order.entities import Order
from tableside.domain.order.events import ChangeKind


class MarkOrderAsRead:
    def __init__(self, order_repository: OrderRepository, publisher: EventPublisher) -> None:
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(self, order_id: OrderId, trace_ctx: TraceContext) -> Order:
        order = self._order_repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        if order.is_read:
            return order

        try:
            updated = self._order_repository.mark_read(order_id)
        except OrderRowNotFoundError as exc:
            raise OrderNotFoundError(f"order {order_id} not found") from exc

        publish_order_change(self._publisher, ChangeKind.UPDATE, order_id, trace_ctx)
        return updated
