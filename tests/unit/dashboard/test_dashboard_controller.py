from __future__ import annotations

import asyncio
import sys
import threading
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from tableside.application.dashboard.controller import DashboardController, OrderOperations
from tableside.application.dto.responses import DashboardSnapshotResponse
from tableside.application.notifications.player import NotificationPlayer
from tableside.application.ports.audio import Tone
from tableside.application.ports.repositories import OrderRowNotFoundError
from tableside.application.use_cases.delete_order import DeleteOrder
from tableside.application.use_cases.list_orders import ListOrders
from tableside.application.use_cases.mark_order_read import MarkOrderAsRead
from tableside.application.use_cases.order_lifecycle import (
    InvalidOrderTransitionError,
    OrderLifecycle,
)
from tableside.config import AlertSettings
from tableside.domain.common.ids import OrderId, OrderItemId
from tableside.domain.common.money import Money
from tableside.domain.order.entities import Order, OrderItem, create_pending_order
from tableside.domain.order.events import ChangeKind, OrderChanged
from tableside.domain.order.lifecycle import OrderStatus

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

FAST_ALERT = AlertSettings(
    period_seconds=0.2,
    burst_tones=3,
    tone_gap_seconds=0.01,
    tone_frequency_hz=800.0,
    tone_duration_seconds=0.3,
    tone_gain=0.3,
)


class InMemoryOrderRepository:
    def __init__(self, orders: list[Order]) -> None:
        self.orders: dict[str, Order] = {str(order.order_id): order for order in orders}
        self.calls: list[str] = []
        self.fail_writes = False
        self.list_gate: threading.Event | None = None

    def add_order(self, order: Order) -> None:
        self.orders[str(order.order_id)] = order

    def add_items(self, items: list[OrderItem]) -> None:
        pass

    def get(self, order_id) -> Order | None:
        return self.orders.get(str(order_id))

    def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        if self.list_gate is not None:
            self.list_gate.wait(timeout=2)
        return sorted(self.orders.values(), key=lambda order: order.created_at, reverse=True)

    def update_status(self, order_id, new_status, expected_status=None) -> Order:
        self.calls.append(f"update_status:{new_status.value}")
        if self.fail_writes:
            raise RuntimeError("store unavailable")
        updated = replace(self.orders[str(order_id)], status=new_status)
        self.orders[str(order_id)] = updated
        return updated

    def mark_read(self, order_id) -> Order:
        self.calls.append("mark_read")
        if self.fail_writes:
            raise RuntimeError("store unavailable")
        if str(order_id) not in self.orders:
            raise OrderRowNotFoundError(str(order_id))
        updated = replace(self.orders[str(order_id)], is_read=True)
        self.orders[str(order_id)] = updated
        return updated

    def delete(self, order_id) -> bool:
        self.calls.append("delete")
        if self.fail_writes:
            raise RuntimeError("store unavailable")
        return self.orders.pop(str(order_id), None) is not None


class FakePublisher:
    def publish(self, channel: str, message: str) -> None:
        pass


class FakeSubscription:
    def __init__(self, callback) -> None:
        self.callback = callback
        self.closed = False

    @property
    def active(self) -> bool:
        return not self.closed

    async def close(self) -> None:
        self.closed = True


class FakeChangeFeed:
    def __init__(self) -> None:
        self.subscriptions: list[FakeSubscription] = []
        self.requests: list[tuple[str, frozenset[ChangeKind]]] = []

    async def subscribe(self, table, kinds, callback) -> FakeSubscription:
        self.requests.append((table, frozenset(kinds)))
        subscription = FakeSubscription(callback)
        self.subscriptions.append(subscription)
        return subscription


class RecordingSink:
    def __init__(self) -> None:
        self.tones: list[Tone] = []
        self.closed = False

    async def play_tone(self, tone: Tone) -> None:
        self.tones.append(tone)

    async def aclose(self) -> None:
        self.closed = True


def _order(order_id: str, minutes: int = 0, is_read: bool = False) -> Order:
    created_at = NOW.replace(minute=minutes)
    item = OrderItem(
        item_id=OrderItemId(f"oit_{order_id}"),
        order_id=OrderId(order_id),
        menu_item_id=None,
        item_name="Lambi",
        price_at_order=Money(amount=Decimal("400"), currency="HTG"),
        quantity=1,
        created_at=created_at,
    )
    order = create_pending_order(
        order_id=OrderId(order_id),
        table_number=4,
        items=[item],
        now=created_at,
        currency="HTG",
    )
    return replace(order, is_read=is_read)


class Harness:
    def __init__(self, orders: list[Order], poll_seconds: float = 30.0) -> None:
        self.repository = InMemoryOrderRepository(orders)
        publisher = FakePublisher()
        self.feed = FakeChangeFeed()
        self.sink = RecordingSink()
        self.snapshots: list[DashboardSnapshotResponse] = []

        async def open_sink() -> RecordingSink:
            return self.sink

        async def on_snapshot(snapshot: DashboardSnapshotResponse) -> None:
            self.snapshots.append(snapshot)

        self.player = NotificationPlayer(open_sink, FAST_ALERT)
        self.controller = DashboardController(
            operations=OrderOperations(
                list_orders=ListOrders(self.repository),
                lifecycle=OrderLifecycle(self.repository, publisher),
                mark_read=MarkOrderAsRead(self.repository, publisher),
                delete=DeleteOrder(self.repository, publisher),
            ),
            change_feed=self.feed,
            player=self.player,
            on_snapshot=on_snapshot,
            poll_seconds=poll_seconds,
            session_id="sess-1",
        )


def test_two_unread_orders_alert_until_both_are_read() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1", 1), _order("ord_2", 2)])
        async with harness.controller as controller:
            assert harness.player.armed is True
            assert harness.player.is_playing is True
            assert harness.snapshots[-1].unreadCount == 2
            assert harness.snapshots[-1].alerting is True

            await controller.mark_read("ord_1")
            assert harness.player.is_playing is True
            assert harness.snapshots[-1].unreadCount == 1

            await controller.mark_read("ord_2")
            assert harness.player.is_playing is False
            assert harness.snapshots[-1].unreadCount == 0
            assert harness.snapshots[-1].alerting is False

    asyncio.run(scenario())


def test_sound_toggle_stops_and_resumes_alert() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1")])
        async with harness.controller as controller:
            await controller.set_sound_enabled(False)
            assert harness.player.is_playing is False
            assert harness.snapshots[-1].soundEnabled is False

            await controller.set_sound_enabled(True)
            assert harness.player.is_playing is True

    asyncio.run(scenario())


def test_mount_subscribes_once_to_every_change_on_orders() -> None:
    async def scenario() -> None:
        harness = Harness([])
        async with harness.controller:
            assert harness.feed.requests == [
                ("orders", frozenset({ChangeKind.INSERT, ChangeKind.UPDATE, ChangeKind.DELETE}))
            ]

    asyncio.run(scenario())


def test_opening_a_second_subscription_closes_the_first() -> None:
    async def scenario() -> None:
        harness = Harness([])
        async with harness.controller as controller:
            first = controller.subscription
            second = await controller.open_subscription()

            assert first is harness.feed.subscriptions[0]
            assert first.closed is True
            assert second is harness.feed.subscriptions[1]
            assert controller.subscription is second
            assert second.active is True

    asyncio.run(scenario())


def test_change_event_replaces_local_state_wholesale() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1", 1)])
        async with harness.controller as controller:
            harness.repository.orders.pop("ord_1")
            harness.repository.orders["ord_2"] = _order("ord_2", 2)

            callback = harness.feed.subscriptions[0].callback
            await callback(
                OrderChanged(kind=ChangeKind.INSERT, table="orders", row_id="ord_2", occurred_at=NOW)
            )

            assert [str(order.order_id) for order in controller.orders] == ["ord_2"]
            assert harness.snapshots[-1].counts.all == 1

    asyncio.run(scenario())


def test_poll_refreshes_without_change_events() -> None:
    async def scenario() -> None:
        harness = Harness([], poll_seconds=0.02)
        async with harness.controller as controller:
            harness.repository.orders["ord_1"] = _order("ord_1", 1)
            await asyncio.sleep(0.1)

            assert [str(order.order_id) for order in controller.orders] == ["ord_1"]
            assert harness.player.is_playing is True

    asyncio.run(scenario())


def test_status_change_is_applied_locally_before_the_store_answers() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1")])
        async with harness.controller as controller:
            change = await controller.change_status("ord_1", "preparing")

            assert change.order.status is OrderStatus.PREPARING
            assert change.order.is_read is True
            patched = harness.snapshots[-1].orders[0]
            assert patched.status == "preparing"
            assert patched.isRead is True
            assert harness.player.is_playing is False

    asyncio.run(scenario())


def test_illegal_transition_is_rejected_without_writing_to_the_store() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1")])
        async with harness.controller as controller:
            with pytest.raises(InvalidOrderTransitionError):
                await controller.change_status("ord_1", "delivered")

            assert harness.repository.calls == []
            assert controller.orders[0].status is OrderStatus.PENDING
            assert harness.snapshots[-1].orders[0].status == "pending"

    asyncio.run(scenario())


def test_stale_local_status_is_refetched_before_judging_a_transition() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1")])
        async with harness.controller as controller:
            # another session moved the order on; no change event arrived yet
            harness.repository.orders["ord_1"] = replace(
                harness.repository.orders["ord_1"], status=OrderStatus.READY
            )

            change = await controller.change_status("ord_1", "delivered")

            assert change.order.status is OrderStatus.DELIVERED
            assert harness.repository.calls[0] == "update_status:delivered"
            assert controller.orders[0].status is OrderStatus.DELIVERED

    asyncio.run(scenario())


def test_failed_action_refetches_instead_of_undoing_the_patch() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1")])
        async with harness.controller as controller:
            harness.repository.fail_writes = True

            with pytest.raises(RuntimeError):
                await controller.advance("ord_1")

            statuses = [snapshot.orders[0].status for snapshot in harness.snapshots[-2:]]
            assert statuses == ["preparing", "pending"]
            assert controller.orders[0].status is OrderStatus.PENDING
            assert harness.player.is_playing is True

    asyncio.run(scenario())


def test_delete_removes_order_locally_and_in_store() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1", 1), _order("ord_2", 2, is_read=True)])
        async with harness.controller as controller:
            await controller.delete("ord_1")

            assert "ord_1" not in harness.repository.orders
            assert [order.orderId for order in harness.snapshots[-1].orders] == ["ord_2"]
            assert harness.player.is_playing is False

    asyncio.run(scenario())


def test_view_changes_filter_the_snapshot_but_not_the_counts() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1", 1), _order("ord_2", 2)])
        async with harness.controller as controller:
            await controller.change_status("ord_2", "preparing")
            await controller.set_view(status_filter="preparing", sort="amount")

            snapshot = harness.snapshots[-1]
            assert [order.orderId for order in snapshot.orders] == ["ord_2"]
            assert snapshot.counts.all == 2
            assert snapshot.statusFilter == "preparing"
            assert snapshot.sort == "amount"

    asyncio.run(scenario())


def test_unmount_releases_everything_and_is_idempotent() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1")], poll_seconds=0.02)
        controller = harness.controller
        await controller.mount()
        subscription = controller.subscription

        await controller.unmount()
        await controller.unmount()
        emitted = len(harness.snapshots)
        await asyncio.sleep(0.06)

        assert subscription is not None and subscription.closed is True
        assert controller.subscription is None
        assert harness.player.is_playing is False
        assert harness.sink.closed is True
        assert await controller.refresh("poll") is False
        assert len(harness.snapshots) == emitted

    asyncio.run(scenario())


def test_unmount_cleans_up_when_closing_the_subscription_fails() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1")], poll_seconds=0.02)
        controller = harness.controller
        await controller.mount()
        poll_task = controller._poll_task
        assert harness.player.is_playing is True

        async def failing_close() -> None:
            raise ConnectionError("redis went away")

        controller.subscription.close = failing_close

        await controller.unmount()

        assert controller.closed is True
        assert harness.player.is_playing is False
        assert harness.sink.closed is True
        assert poll_task is not None and poll_task.done()

    asyncio.run(scenario())


def test_fetch_finishing_after_unmount_is_discarded() -> None:
    async def scenario() -> None:
        harness = Harness([_order("ord_1")])
        controller = harness.controller
        await controller.mount()
        before = controller.orders

        gate = threading.Event()
        harness.repository.list_gate = gate
        harness.repository.orders["ord_2"] = _order("ord_2", 2)
        in_flight = asyncio.create_task(controller.refresh("change"))
        await asyncio.sleep(0.02)

        await controller.unmount()
        emitted = len(harness.snapshots)
        gate.set()

        assert await in_flight is False
        assert controller.orders == before
        assert len(harness.snapshots) == emitted

    asyncio.run(scenario())
