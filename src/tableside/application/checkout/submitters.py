from __future__ import annotations

from tableside.application.dto.requests import CreateOrderRequest
from tableside.application.use_cases.context import TraceContext
from tableside.application.use_cases.create_order import CreateOrder


class UseCaseOrderSubmitter:
    """Submits through ``CreateOrder`` in the same process."""

    def __init__(self, create_order: CreateOrder) -> None:
        self._create_order = create_order

    def submit(self, request_dto: CreateOrderRequest) -> str:
        return str(self._create_order.execute(request_dto, TraceContext.detached()))
