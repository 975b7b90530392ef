from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from tableside.application.dto.requests import CreateOrderItemRequest, CreateOrderRequest
from tableside.application.metrics.order_lifecycle import (
    record_order_created,
    record_order_items_write_failed,
)
from tableside.application.ports.publisher import EventPublisher
from tableside.application.ports.repositories import OrderRepository
from tableside.application.use_cases.change_events import publish_order_change
from tableside.application.use_cases.context import TraceContext
from tableside.domain.common.ids import MenuItemId, OrderId, new_order_id, new_order_item_id
from tableside.domain.common.money import Money
from tableside.domain.order.entities import OrderItem, create_pending_order
from tableside.domain.order.events import ChangeKind

logger = logging.getLogger(__name__)

# limits of the orders schema: INTEGER columns and NUMERIC(12, 2) amounts
MAX_TABLE_NUMBER = 2_147_483_647
MAX_ITEM_QUANTITY = 2_147_483_647
MAX_AMOUNT = Decimal("9999999999.99")
CENT = Decimal("0.01")


class InvalidTableNumberError(Exception):
    pass


class EmptyOrderError(Exception):
    pass


class InvalidOrderItemError(Exception):
    pass


class OrderItemsPersistenceError(Exception):
    def __init__(self, message: str, order_id: OrderId) -> None:
        super().__init__(message)
        self.order_id = order_id
        self.details = {"orderId": str(order_id)}


class CreateOrder:
    """Write an order row, then its item rows.

    The two writes are not transactional. If the item write fails the order
    row stays behind without items and the failure is reported to the caller
    as ``OrderItemsPersistenceError``; nothing is rolled back or retried.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        publisher: EventPublisher,
        currency: str,
    ) -> None:
        self._order_repository = order_repository
        self._publisher = publisher
        self._currency = currency

    def execute(self, request_dto: CreateOrderRequest, trace_ctx: TraceContext) -> OrderId:
        if not 1 <= request_dto.table_number <= MAX_TABLE_NUMBER:
            raise InvalidTableNumberError(
                f"table number must be between 1 and {MAX_TABLE_NUMBER}, "
                f"got {request_dto.table_number}"
            )
        if not request_dto.items:
            raise EmptyOrderError("order must contain at least one item")

        now = datetime.now(timezone.utc)
        order_id = new_order_id()
        items = [self._snapshot_item(order_id, line, now) for line in request_dto.items]
        order = create_pending_order(
            order_id=order_id,
            table_number=request_dto.table_number,
            items=items,
            now=now,
            currency=self._currency,
            customer_name=_blank_to_none(request_dto.customer_name),
            notes=_blank_to_none(request_dto.notes),
        )
        if order.total_amount.amount > MAX_AMOUNT:
            raise InvalidOrderItemError(f"order total must not exceed {MAX_AMOUNT}")

        self._order_repository.add_order(order)
        try:
            self._order_repository.add_items(order.items)
        except Exception as exc:
            record_order_items_write_failed()
            logger.error(
                "order_items_write_failed",
                extra={"order_id": str(order_id), "table_number": order.table_number},
                exc_info=True,
            )
            publish_order_change(self._publisher, ChangeKind.INSERT, order_id, trace_ctx)
            raise OrderItemsPersistenceError(
                f"order {order_id} was created but its items could not be saved",
                order_id=order_id,
            ) from exc

        record_order_created()
        logger.info(
            "order_created",
            extra={
                "order_id": str(order_id),
                "table_number": order.table_number,
                "total_amount": str(order.total_amount.amount),
            },
        )
        publish_order_change(self._publisher, ChangeKind.INSERT, order_id, trace_ctx)
        return order_id

    def _snapshot_item(
        self,
        order_id: OrderId,
        line: CreateOrderItemRequest,
        now: datetime,
    ) -> OrderItem:
        if not 1 <= line.quantity <= MAX_ITEM_QUANTITY:
            raise InvalidOrderItemError(
                f"quantity must be between 1 and {MAX_ITEM_QUANTITY} for item {line.name!r}"
            )
        if not line.name.strip():
            raise InvalidOrderItemError("item name must be non-empty")
        try:
            price = Money(amount=line.price, currency=self._currency)
        except ValueError as exc:
            raise InvalidOrderItemError(f"invalid price for item {line.name!r}: {exc}") from exc
        if not _fits_amount_column(price.amount):
            raise InvalidOrderItemError(
                f"price for item {line.name!r} must have at most 2 decimal places "
                f"and not exceed {MAX_AMOUNT}"
            )

        return OrderItem(
            item_id=new_order_item_id(),
            order_id=order_id,
            menu_item_id=MenuItemId(line.menu_item_id) if line.menu_item_id else None,
            item_name=line.name.strip(),
            price_at_order=price,
            quantity=line.quantity,
            created_at=now,
        )


def _fits_amount_column(amount: Decimal) -> bool:
    if amount > MAX_AMOUNT:
        return False
    try:
        return amount == amount.quantize(CENT)
    except InvalidOperation:
        return False


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()
