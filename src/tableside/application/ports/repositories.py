from __future__ import annotations

from typing import Protocol

from tableside.domain.common.ids import OrderId
from tableside.domain.order.entities import Order, OrderItem
from tableside.domain.order.lifecycle import OrderStatus


class OrderRepository(Protocol):
    def add_order(self, order: Order) -> None: ...

    def add_items(self, items: list[OrderItem]) -> None: ...

    def get(self, order_id: OrderId) -> Order | None: ...

    def list_orders(self, status: OrderStatus | None = None) -> list[Order]: ...

    def update_status(
        self,
        order_id: OrderId,
        new_status: OrderStatus,
        expected_status: OrderStatus | None = None,
    ) -> Order: ...

    def mark_read(self, order_id: OrderId) -> Order: ...

    def delete(self, order_id: OrderId) -> bool: ...


class OrderRowNotFoundError(Exception):
    pass


class StaleOrderStatusError(Exception):
    pass
