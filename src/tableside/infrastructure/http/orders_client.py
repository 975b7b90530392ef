from __future__ import annotations

import logging
from typing import Any

import httpx

from tableside.application.dto.requests import CreateOrderRequest
from tableside.application.ports.submitter import OrderSubmitter

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


class OrderSubmissionError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        order_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.order_id = order_id


class HttpOrderSubmitter(OrderSubmitter):
    """Posts orders to a running API instance at ``POST /v1/orders``."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout_seconds)

    def submit(self, request_dto: CreateOrderRequest) -> str:
        payload = request_dto.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            response = self._client.post("/v1/orders", json=payload)
        except httpx.HTTPError as exc:
            raise OrderSubmissionError(f"order service unreachable: {exc}") from exc

        if response.status_code != httpx.codes.CREATED:
            raise _submission_error(response)

        order_id = str(response.json()["orderId"])
        logger.info(
            "order_submitted",
            extra={
                "order_id": order_id,
                "table_number": request_dto.table_number,
                "request_id": response.headers.get(REQUEST_ID_HEADER),
            },
        )
        return order_id

    def close(self) -> None:
        self._client.close()


def _submission_error(response: httpx.Response) -> OrderSubmissionError:
    error: dict[str, Any] = {}
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]

    details = error.get("details") if isinstance(error.get("details"), dict) else {}
    return OrderSubmissionError(
        str(error.get("message") or f"order submission failed with HTTP {response.status_code}"),
        status_code=response.status_code,
        code=error.get("code"),
        order_id=details.get("orderId"),
    )
