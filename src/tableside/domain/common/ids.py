from __future__ import annotations

from typing import NewType
from uuid import uuid4

MenuItemId = NewType("MenuItemId", str)
CategoryId = NewType("CategoryId", str)
OrderId = NewType("OrderId", str)
OrderItemId = NewType("OrderItemId", str)


def new_order_id() -> OrderId:
    return OrderId(f"ord_{uuid4().hex[:12]}")


def new_order_item_id() -> OrderItemId:
    return OrderItemId(f"oit_{uuid4().hex[:12]}")
