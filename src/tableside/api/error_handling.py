from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tableside.api.middleware.request_id import get_request_id
from tableside.application.dashboard.view import InvalidSortKeyError
from tableside.application.use_cases.create_order import (
    EmptyOrderError,
    InvalidOrderItemError,
    InvalidTableNumberError,
    OrderItemsPersistenceError,
)
from tableside.application.use_cases.get_order import OrderNotFoundError
from tableside.application.use_cases.order_lifecycle import InvalidOrderTransitionError
from tableside.application.use_cases.update_order_status import (
    InvalidOrderStatusError,
    OrderConflictError,
)

logger = logging.getLogger(__name__)

# (exception, HTTP status, stable error code); shared with the websocket route
ERROR_MAPPINGS: list[tuple[type[Exception], int, str]] = [
    (OrderNotFoundError, 404, "ORDER_NOT_FOUND"),
    (InvalidTableNumberError, 400, "INVALID_TABLE_NUMBER"),
    (EmptyOrderError, 400, "EMPTY_ORDER"),
    (InvalidOrderItemError, 400, "INVALID_ORDER_ITEM"),
    (InvalidOrderStatusError, 400, "INVALID_ORDER_STATUS"),
    (InvalidSortKeyError, 400, "INVALID_SORT_KEY"),
    (InvalidOrderTransitionError, 409, "INVALID_ORDER_TRANSITION"),
    (OrderConflictError, 409, "CONFLICT"),
    (OrderItemsPersistenceError, 500, "ORDER_ITEMS_NOT_PERSISTED"),
    (SQLAlchemyError, 503, "STORE_UNAVAILABLE"),
]


def error_code_for(exc: Exception) -> tuple[int, str]:
    for exc_cls, status_code, code in ERROR_MAPPINGS:
        if isinstance(exc, exc_cls):
            return status_code, code
    return 500, "INTERNAL_ERROR"


def error_body(
    *,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
        "requestId": get_request_id(),
    }


def _error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(code=code, message=message, details=details),
    )


def _exception_handler(status_code: int, code: str):
    async def handler(_: Request, exc: Exception) -> JSONResponse:
        details = getattr(exc, "details", None)
        message = str(exc)
        if isinstance(exc, SQLAlchemyError):
            logger.error("store_unavailable", exc_info=exc)
            message = "order store is unavailable"
        return _error_response(
            status_code=status_code,
            code=code,
            message=message,
            details=details if isinstance(details, dict) else None,
        )

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message = str(http_exc.detail) if http_exc.detail else "request failed"
    code = "HTTP_ERROR"
    if http_exc.status_code == 404:
        code = "NOT_FOUND"
    elif http_exc.status_code == 400:
        code = "BAD_REQUEST"
    elif http_exc.status_code == 405:
        code = "METHOD_NOT_ALLOWED"
    return _error_response(
        status_code=http_exc.status_code,
        code=code,
        message=message,
    )


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return _error_response(
        status_code=400,
        code="INVALID_REQUEST",
        message="request validation failed",
        details={"errors": jsonable_encoder(validation_exc.errors())},
    )


def register_exception_handlers(app: FastAPI) -> None:
    for exc_cls, status_code, code in ERROR_MAPPINGS:
        app.add_exception_handler(exc_cls, _exception_handler(status_code, code))

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
