from __future__ import annotations

from tableside.application.ports.repositories import OrderRepository
from tableside.application.use_cases.update_order_status import InvalidOrderStatusError
from tableside.domain.order.entities import Order
from tableside.domain.order.lifecycle import OrderStatus

ALL_STATUSES = "all"

_STATUS_MAP: dict[str, OrderStatus | None] = {
    ALL_STATUSES: None,
    **{status.value: status for status in OrderStatus},
}


def parse_status_filter(status: str) -> OrderStatus | None:
    normalized_status = status.strip().lower()
    if normalized_status not in _STATUS_MAP:
        raise InvalidOrderStatusError(f"invalid order status filter: {status}")
    return _STATUS_MAP[normalized_status]


class ListOrders:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, status: str = ALL_STATUSES) -> list[Order]:
        return self._order_repository.list_orders(status=parse_status_filter(status))
