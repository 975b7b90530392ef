from __future__ import annotations

import logging

from tableside.application.ports.publisher import EventPublisher
from tableside.application.ports.repositories import (
    OrderRepository,
    OrderRowNotFoundError,
    StaleOrderStatusError,
)
from tableside.application.use_cases.change_events import publish_order_change
from tableside.application.use_cases.context import TraceContext
from tableside.application.use_cases.get_order import OrderNotFoundError
from tableside.domain.common.ids import OrderId
from tableside.domain.order.entities import Order
from tableside.domain.order.events import ChangeKind
from tableside.domain.order.lifecycle import OrderStatus, parse_status

logger = logging.getLogger(__name__)


class InvalidOrderStatusError(Exception):
    pass


class OrderConflictError(Exception):
    pass


def coerce_status(status: str | OrderStatus) -> OrderStatus:
    if isinstance(status, OrderStatus):
        return status
    try:
        return parse_status(status)
    except ValueError as exc:
        raise InvalidOrderStatusError(str(exc)) from exc


class UpdateOrderStatus:
    """Persist a status value. Transition legality is not checked here."""

    def __init__(self, order_repository: OrderRepository, publisher: EventPublisher) -> None:
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(
        self,
        order_id: OrderId,
        status: str | OrderStatus,
        trace_ctx: TraceContext,
        expected_status: OrderStatus | None = None,
    ) -> Order:
        new_status = coerce_status(status)
        try:
            updated = self._order_repository.update_status(
                order_id=order_id,
                new_status=new_status,
                expected_status=expected_status,
            )
        except OrderRowNotFoundError as exc:
            raise OrderNotFoundError(f"order {order_id} not found") from exc
        except StaleOrderStatusError as exc:
            raise OrderConflictError(f"order {order_id} status changed concurrently") from exc

        logger.info(
            "order_status_updated",
            extra={"order_id": str(order_id), "status": new_status.value},
        )
        publish_order_change(self._publisher, ChangeKind.UPDATE, order_id, trace_ctx)
        return updated
