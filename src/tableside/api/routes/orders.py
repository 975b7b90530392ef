from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from tableside.api.middleware.request_id import get_request_id
from tableside.application.dto.requests import CreateOrderRequest, UpdateOrderStatusRequest
from tableside.application.dto.responses import (
    CreateOrderResponse,
    OrderListResponse,
    OrderResponse,
    StatusChangeResponse,
)
from tableside.application.mappers.order_mapper import to_order_response
from tableside.application.use_cases.context import TraceContext
from tableside.application.use_cases.create_order import CreateOrder
from tableside.application.use_cases.delete_order import DeleteOrder
from tableside.application.use_cases.get_order import GetOrder
from tableside.application.use_cases.list_orders import ALL_STATUSES, ListOrders
from tableside.application.use_cases.mark_order_read import MarkOrderAsRead
from tableside.application.use_cases.order_lifecycle import OrderLifecycle, StatusChange
from tableside.config import get_settings
from tableside.domain.common.ids import OrderId
from tableside.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from tableside.infrastructure.messaging.redis_publisher import build_event_publisher
from tableside.infrastructure.observability.otel import current_trace_id

router = APIRouter()


def _trace_ctx() -> TraceContext:
    return TraceContext(trace_id=current_trace_id(), request_id=get_request_id())


def _status_change_response(change: StatusChange) -> StatusChangeResponse:
    return StatusChangeResponse(
        order=to_order_response(change.order),
        acknowledged=change.acknowledged,
    )


@router.post(
    "/v1/orders",
    response_model=CreateOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_order(request_dto: CreateOrderRequest) -> CreateOrderResponse:
    use_case = CreateOrder(
        order_repository=SqlAlchemyOrderRepository(),
        publisher=build_event_publisher(),
        currency=get_settings().currency,
    )
    order_id = use_case.execute(request_dto=request_dto, trace_ctx=_trace_ctx())
    return CreateOrderResponse(orderId=str(order_id))


@router.get("/v1/orders", response_model=OrderListResponse)
def list_orders(status_filter: str = Query(ALL_STATUSES, alias="status")) -> OrderListResponse:
    orders = ListOrders(order_repository=SqlAlchemyOrderRepository()).execute(status=status_filter)
    return OrderListResponse(orders=[to_order_response(order) for order in orders])


@router.get("/v1/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    order = GetOrder(order_repository=SqlAlchemyOrderRepository()).execute(order_id=OrderId(order_id))
    return to_order_response(order)


@router.patch("/v1/orders/{order_id}/status", response_model=StatusChangeResponse)
def update_order_status(order_id: str, request_dto: UpdateOrderStatusRequest) -> StatusChangeResponse:
    lifecycle = OrderLifecycle(SqlAlchemyOrderRepository(), build_event_publisher())
    change = lifecycle.change_status(OrderId(order_id), request_dto.status, _trace_ctx())
    return _status_change_response(change)


@router.post("/v1/orders/{order_id}/advance", response_model=StatusChangeResponse)
def advance_order(order_id: str) -> StatusChangeResponse:
    lifecycle = OrderLifecycle(SqlAlchemyOrderRepository(), build_event_publisher())
    return _status_change_response(lifecycle.advance(OrderId(order_id), _trace_ctx()))


@router.post("/v1/orders/{order_id}/read", response_model=OrderResponse)
def mark_order_read(order_id: str) -> OrderResponse:
    use_case = MarkOrderAsRead(SqlAlchemyOrderRepository(), build_event_publisher())
    return to_order_response(use_case.execute(OrderId(order_id), _trace_ctx()))


@router.delete("/v1/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(order_id: str) -> Response:
    DeleteOrder(SqlAlchemyOrderRepository(), build_event_publisher()).execute(
        OrderId(order_id), _trace_ctx()
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
