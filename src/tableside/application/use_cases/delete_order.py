from __future__ import annotations

import logging

from tableside.application.metrics.order_lifecycle import record_order_deleted
from tableside.application.ports.publisher import EventPublisher
from tableside.application.ports.repositories import OrderRepository
from tableside.application.use_cases.change_events import publish_order_change
from tableside.application.use_cases.context import TraceContext
from tableside.application.use_cases.get_order import OrderNotFoundError
from tableside.domain.common.ids import OrderId
from tableside.domain.order.events import ChangeKind

logger = logging.getLogger(__name__)


class DeleteOrder:
    def __init__(self, order_repository: OrderRepository, publisher: EventPublisher) -> None:
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(self, order_id: OrderId, trace_ctx: TraceContext) -> None:
        if not self._order_repository.delete(order_id):
            raise OrderNotFoundError(f"order {order_id} not found")

        record_order_deleted()
        logger.info("order_deleted", extra={"order_id": str(order_id)})
        publish_order_change(self._publisher, ChangeKind.DELETE, order_id, trace_ctx)
