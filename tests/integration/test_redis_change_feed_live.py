from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from tableside.application.use_cases.change_events import ORDERS_TABLE, publish_order_change
from tableside.application.use_cases.context import TraceContext
from tableside.domain.common.ids import OrderId
from tableside.domain.order.events import ChangeKind, OrderChanged
from tableside.infrastructure.messaging.redis_change_feed import RedisChangeFeed
from tableside.infrastructure.messaging.redis_publisher import RedisEventPublisher


def test_published_changes_reach_subscribers_filtered_by_kind() -> None:
    async def scenario() -> list[OrderChanged]:
        received: list[OrderChanged] = []
        delivered = asyncio.Event()

        async def on_change(event: OrderChanged) -> None:
            received.append(event)
            delivered.set()

        subscription = await RedisChangeFeed().subscribe(
            ORDERS_TABLE, {ChangeKind.DELETE}, on_change
        )
        try:
            await asyncio.sleep(0.5)
            publisher = RedisEventPublisher()
            trace_ctx = TraceContext.detached(request_id="req-int")
            await asyncio.to_thread(
                publish_order_change, publisher, ChangeKind.INSERT, OrderId("ord_1"), trace_ctx
            )
            await asyncio.to_thread(
                publish_order_change, publisher, ChangeKind.DELETE, OrderId("ord_1"), trace_ctx
            )
            await asyncio.wait_for(delivered.wait(), timeout=5)
        finally:
            await subscription.close()
        return received

    received = asyncio.run(scenario())

    assert [event.kind for event in received] == [ChangeKind.DELETE]
    assert received[0].row_id == "ord_1"
    assert received[0].occurred_at <= datetime.now(timezone.utc)
