from __future__ import annotations

from tableside.application.dto.responses import (
    MoneyResponse,
    OrderItemResponse,
    OrderResponse,
)
from tableside.domain.common.money import Money
from tableside.domain.order.entities import Order


def to_money_response(money: Money) -> MoneyResponse:
    return MoneyResponse(amount=money.amount, currency=money.currency)


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        orderId=str(order.order_id),
        tableNumber=order.table_number,
        customerName=order.customer_name,
        status=order.status.value,
        totalAmount=to_money_response(order.total_amount),
        notes=order.notes,
        isRead=order.is_read,
        createdAt=order.created_at,
        updatedAt=order.updated_at,
        items=[
            OrderItemResponse(
                itemId=str(item.item_id),
                orderId=str(item.order_id),
                menuItemId=str(item.menu_item_id) if item.menu_item_id is not None else None,
                itemName=item.item_name,
                priceAtOrder=to_money_response(item.price_at_order),
                quantity=item.quantity,
                lineTotal=to_money_response(item.line_total),
            )
            for item in order.items
        ],
    )
