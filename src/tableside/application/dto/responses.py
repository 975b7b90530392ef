from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amount: Decimal
    currency: str


class OrderItemResponse(BaseModel):
    itemId: str
    orderId: str
    menuItemId: str | None = None
    itemName: str
    priceAtOrder: MoneyResponse
    quantity: int
    lineTotal: MoneyResponse


class OrderResponse(BaseModel):
    orderId: str
    tableNumber: int
    customerName: str | None = None
    status: str
    totalAmount: MoneyResponse
    notes: str | None = None
    isRead: bool
    createdAt: datetime
    updatedAt: datetime
    items: list[OrderItemResponse] = Field(default_factory=list)


class OrderListResponse(BaseModel):
    orders: list[OrderResponse] = Field(default_factory=list)


class CreateOrderResponse(BaseModel):
    orderId: str


class StatusChangeResponse(BaseModel):
    order: OrderResponse
    acknowledged: bool


class StatusCountsResponse(BaseModel):
    all: int
    pending: int
    preparing: int
    ready: int
    delivered: int
    cancelled: int


class DashboardSnapshotResponse(BaseModel):
    type: Literal["snapshot"] = "snapshot"
    orders: list[OrderResponse] = Field(default_factory=list)
    counts: StatusCountsResponse
    unreadCount: int
    soundEnabled: bool
    alerting: bool
    audioArmed: bool
    statusFilter: str
    search: str
    sort: str
