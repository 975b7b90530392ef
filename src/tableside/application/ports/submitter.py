from __future__ import annotations

from typing import Protocol

from tableside.application.dto.requests import CreateOrderRequest


class OrderSubmitter(Protocol):
    def submit(self, request_dto: CreateOrderRequest) -> str: ...
