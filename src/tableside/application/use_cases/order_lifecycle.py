from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from tableside.application.metrics.order_lifecycle import record_time_to_status, record_transition
from tableside.application.ports.publisher import EventPublisher
from tableside.application.ports.repositories import OrderRepository
from tableside.application.use_cases.context import TraceContext
from tableside.application.use_cases.get_order import OrderNotFoundError
from tableside.application.use_cases.mark_order_read import MarkOrderAsRead
from tableside.application.use_cases.update_order_status import UpdateOrderStatus, coerce_status
from tableside.domain.common.ids import OrderId
from tableside.domain.order.entities import Order
from tableside.domain.order.lifecycle import (
    OrderStatus,
    OrderTransitionError,
    ensure_transition,
    next_status,
)

logger = logging.getLogger(__name__)


class InvalidOrderTransitionError(Exception):
    pass


@dataclass(frozen=True)
class StatusChange:
    order: Order
    previous_status: OrderStatus
    acknowledged: bool


class OrderLifecycle:
    """Staff-facing status changes.

    Legality is decided here against the transition table, before the store
    is touched. A legal change is two store calls: the status write, then the
    read acknowledgement. A failed acknowledgement leaves the new status in
    place and is reported through ``StatusChange.acknowledged``.
    """

    def __init__(self, order_repository: OrderRepository, publisher: EventPublisher) -> None:
        self._order_repository = order_repository
        self._update_status = UpdateOrderStatus(order_repository, publisher)
        self._mark_read = MarkOrderAsRead(order_repository, publisher)

    def change_status(
        self,
        order_id: OrderId,
        status: str | OrderStatus,
        trace_ctx: TraceContext,
    ) -> StatusChange:
        target = coerce_status(status)
        order = self._load(order_id)
        return self._apply(order, target, trace_ctx)

    def advance(self, order_id: OrderId, trace_ctx: TraceContext) -> StatusChange:
        order = self._load(order_id)
        target = next_status(order.status)
        if target is None:
            raise InvalidOrderTransitionError(
                f"cannot advance order from status={order.status.value}"
            )
        return self._apply(order, target, trace_ctx)

    def _load(self, order_id: OrderId) -> Order:
        order = self._order_repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        return order

    def _apply(self, order: Order, target: OrderStatus, trace_ctx: TraceContext) -> StatusChange:
        try:
            ensure_transition(order.status, target)
        except OrderTransitionError as exc:
            raise InvalidOrderTransitionError(str(exc)) from exc

        updated = self._update_status.execute(
            order_id=order.order_id,
            status=target,
            trace_ctx=trace_ctx,
            expected_status=order.status,
        )
        record_transition(from_status=order.status, to_status=target)
        record_time_to_status(updated, now=datetime.now(timezone.utc))

        try:
            acknowledged = self._mark_read.execute(order.order_id, trace_ctx)
        except Exception:
            logger.warning(
                "order_read_ack_failed",
                extra={"order_id": str(order.order_id), "status": target.value},
                exc_info=True,
            )
            return StatusChange(order=updated, previous_status=order.status, acknowledged=False)

        return StatusChange(order=acknowledged, previous_status=order.status, acknowledged=True)
