from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from tableside.domain.common.ids import MenuItemId, OrderId, OrderItemId
from tableside.domain.common.money import Money
from tableside.domain.order.lifecycle import (
    OrderStatus,
    OrderTransitionError,
    ensure_transition,
    next_status,
)


@dataclass(frozen=True)
class OrderItem:
    item_id: OrderItemId
    order_id: OrderId
    menu_item_id: MenuItemId | None
    item_name: str
    price_at_order: Money
    quantity: int
    created_at: datetime

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if not self.item_name.strip():
            raise ValueError("item_name must be non-empty")

    @property
    def line_total(self) -> Money:
        return self.price_at_order.times(self.quantity)


@dataclass(frozen=True)
class Order:
    order_id: OrderId
    table_number: int
    customer_name: str | None
    status: OrderStatus
    total_amount: Money
    notes: str | None
    is_read: bool
    created_at: datetime
    updated_at: datetime
    items: list[OrderItem]

    def __post_init__(self) -> None:
        if self.table_number < 1:
            raise ValueError("table_number must be >= 1")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def transition_to(self, status: OrderStatus, now: datetime) -> Order:
        ensure_transition(self.status, status)
        return replace(self, status=status, is_read=True, updated_at=now)

    def advance(self, now: datetime) -> Order:
        target = next_status(self.status)
        if target is None:
            raise OrderTransitionError(f"cannot advance order from status={self.status.value}")
        return self.transition_to(target, now)

    def mark_read(self) -> Order:
        if self.is_read:
            return self
        return replace(self, is_read=True)


def create_pending_order(
    order_id: OrderId,
    table_number: int,
    items: list[OrderItem],
    now: datetime,
    currency: str,
    customer_name: str | None = None,
    notes: str | None = None,
) -> Order:
    if not items:
        raise ValueError("order must contain at least one item")

    total = Money.zero(currency)
    for item in items:
        total = total + item.line_total

    return Order(
        order_id=order_id,
        table_number=table_number,
        customer_name=customer_name,
        status=OrderStatus.PENDING,
        total_amount=total,
        notes=notes,
        is_read=False,
        created_at=now,
        updated_at=now,
        items=items,
    )
