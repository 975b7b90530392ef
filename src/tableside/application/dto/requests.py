from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class CreateOrderItemRequest(CamelBaseModel):
    menu_item_id: str | None = None
    name: str
    price: Decimal
    quantity: int


class CreateOrderRequest(CamelBaseModel):
    table_number: int
    items: list[CreateOrderItemRequest]
    customer_name: str | None = None
    notes: str | None = None


class UpdateOrderStatusRequest(CamelBaseModel):
    status: str


DashboardCommandType = Literal["view", "status", "advance", "read", "delete", "sound", "audio.arm"]


class DashboardCommand(CamelBaseModel):
    type: DashboardCommandType
    order_id: str | None = None
    status: str | None = None
    search: str | None = None
    sort: str | None = None
    enabled: bool | None = None
