from __future__ import annotations

from tableside.application.ports.repositories import OrderRepository
from tableside.domain.common.ids import OrderId
from tableside.domain.order.entities import Order


class OrderNotFoundError(Exception):
    pass


class GetOrder:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, order_id: OrderId) -> Order:
        order = self._order_repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        return order
