from __future__ import annotations

import logging
from datetime import datetime, timezone

from tableside.application.mappers.event_envelope import serialize_change_event
from tableside.application.ports.publisher import EventPublisher, change_channel
from tableside.application.use_cases.context import TraceContext
from tableside.domain.common.ids import OrderId
from tableside.domain.order.events import ChangeKind, OrderChanged

ORDERS_TABLE = "orders"

logger = logging.getLogger(__name__)


def publish_order_change(
    publisher: EventPublisher,
    kind: ChangeKind,
    order_id: OrderId,
    trace_ctx: TraceContext,
) -> None:
    event = OrderChanged(
        kind=kind,
        table=ORDERS_TABLE,
        row_id=str(order_id),
        occurred_at=datetime.now(timezone.utc),
    )
    message = serialize_change_event(
        event=event,
        trace_id=trace_ctx.trace_id,
        request_id=trace_ctx.request_id,
    )
    try:
        publisher.publish(channel=change_channel(ORDERS_TABLE), message=message)
    except Exception:
        # subscribers fall back to polling
        logger.warning(
            "change_publish_failed",
            extra={"event_type": kind.value, "order_id": str(order_id)},
            exc_info=True,
        )
