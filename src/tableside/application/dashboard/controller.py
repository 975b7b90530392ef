from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TypeVar
from uuid import uuid4

from tableside.application.dashboard.view import DashboardView, status_counts, unread_count
from tableside.application.dto.responses import DashboardSnapshotResponse
from tableside.application.mappers.dashboard_mapper import to_dashboard_snapshot_response
from tableside.application.metrics.order_lifecycle import (
    record_dashboard_mounted,
    record_dashboard_refresh,
    record_dashboard_unmounted,
)
from tableside.application.notifications.player import NotificationPlayer
from tableside.application.ports.change_feed import ChangeFeed, ChangeSubscription
from tableside.application.use_cases.change_events import ORDERS_TABLE
from tableside.application.use_cases.context import TraceContext
from tableside.application.use_cases.delete_order import DeleteOrder
from tableside.application.use_cases.list_orders import ListOrders
from tableside.application.use_cases.mark_order_read import MarkOrderAsRead
from tableside.application.use_cases.order_lifecycle import (
    InvalidOrderTransitionError,
    OrderLifecycle,
    StatusChange,
)
from tableside.application.use_cases.update_order_status import coerce_status
from tableside.domain.common.ids import OrderId
from tableside.domain.order.entities import Order
from tableside.domain.order.events import ALL_CHANGE_KINDS, OrderChanged
from tableside.domain.order.lifecycle import OrderTransitionError

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[DashboardSnapshotResponse], Awaitable[None]]

T = TypeVar("T")


@dataclass(frozen=True)
class OrderOperations:
    list_orders: ListOrders
    lifecycle: OrderLifecycle
    mark_read: MarkOrderAsRead
    delete: DeleteOrder


class DashboardController:
    """State and actions behind one staff dashboard session.

    Local state is always a full copy of the order list. Change events and
    poll ticks both trigger the same full refresh, which replaces that copy
    wholesale; the last response to arrive wins. Staff actions patch the
    local copy first, then call the store, and on failure re-fetch instead
    of undoing the patch.

    The notification player is kept Playing exactly while there is at least
    one unread order and sound is enabled.
    """

    def __init__(
        self,
        operations: OrderOperations,
        change_feed: ChangeFeed,
        player: NotificationPlayer,
        on_snapshot: SnapshotCallback,
        poll_seconds: float = 3.0,
        session_id: str | None = None,
    ) -> None:
        self._operations = operations
        self._change_feed = change_feed
        self._player = player
        self._on_snapshot = on_snapshot
        self._poll_seconds = poll_seconds
        self.session_id = session_id or uuid4().hex[:12]

        self._orders: list[Order] = []
        self._view = DashboardView()
        self._sound_enabled = True
        self._subscription: ChangeSubscription | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._mounted = False
        self._closed = False

    @property
    def orders(self) -> list[Order]:
        return list(self._orders)

    @property
    def view(self) -> DashboardView:
        return self._view

    @property
    def sound_enabled(self) -> bool:
        return self._sound_enabled

    @property
    def subscription(self) -> ChangeSubscription | None:
        return self._subscription

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> DashboardController:
        await self.mount()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.unmount()

    async def mount(self) -> None:
        if self._mounted or self._closed:
            return
        self._mounted = True
        record_dashboard_mounted()
        logger.info("dashboard_mounted", extra={"session_id": self.session_id})

        await self._player.arm()
        await self.refresh("mount")
        await self.open_subscription()
        self._poll_task = asyncio.get_running_loop().create_task(self._poll())

    async def unmount(self) -> None:
        if self._closed:
            return
        self._closed = True

        subscription, self._subscription = self._subscription, None
        poll_task, self._poll_task = self._poll_task, None
        try:
            if subscription is not None:
                await self._close_subscription(subscription)
        finally:
            try:
                if poll_task is not None:
                    poll_task.cancel()
                    with suppress(asyncio.CancelledError):
                        await poll_task
            finally:
                await self._player.aclose()
                if self._mounted:
                    record_dashboard_unmounted()
        logger.info("dashboard_unmounted", extra={"session_id": self.session_id})

    async def open_subscription(self) -> ChangeSubscription | None:
        """Subscribe to order changes, closing any subscription held before."""
        previous, self._subscription = self._subscription, None
        if previous is not None:
            await previous.close()
        if self._closed:
            return None

        subscription = await self._change_feed.subscribe(
            ORDERS_TABLE,
            ALL_CHANGE_KINDS,
            self._on_change,
        )
        if self._closed:
            await subscription.close()
            return None
        self._subscription = subscription
        return subscription

    async def refresh(self, source: str = "manual") -> bool:
        if self._closed:
            return False
        try:
            orders = await asyncio.to_thread(self._operations.list_orders.execute)
        except Exception:
            logger.warning(
                "dashboard_refresh_failed",
                extra={"session_id": self.session_id, "source": source},
                exc_info=True,
            )
            return False

        if self._closed:
            logger.debug(
                "dashboard_refresh_discarded",
                extra={"session_id": self.session_id, "source": source},
            )
            return False

        self._orders = orders
        record_dashboard_refresh(source)
        await self._state_changed()
        return True

    async def change_status(self, order_id: str, status: str) -> StatusChange:
        target = coerce_status(status)
        await self._patch_transition(order_id, lambda order: order.transition_to(target, _now()))

        return await self._call_store(
            "status",
            order_id,
            lambda: self._operations.lifecycle.change_status(
                OrderId(order_id), target, self._trace_ctx()
            ),
        )

    async def advance(self, order_id: str) -> StatusChange:
        await self._patch_transition(order_id, lambda order: order.advance(_now()))

        return await self._call_store(
            "advance",
            order_id,
            lambda: self._operations.lifecycle.advance(OrderId(order_id), self._trace_ctx()),
        )

    async def mark_read(self, order_id: str) -> Order:
        current = self._find(order_id)
        if current is not None and not current.is_read:
            await self._patch(current.mark_read())

        return await self._call_store(
            "read",
            order_id,
            lambda: self._operations.mark_read.execute(OrderId(order_id), self._trace_ctx()),
        )

    async def delete(self, order_id: str) -> None:
        if self._find(order_id) is not None:
            self._orders = [order for order in self._orders if order.order_id != order_id]
            await self._state_changed()

        await self._call_store(
            "delete",
            order_id,
            lambda: self._operations.delete.execute(OrderId(order_id), self._trace_ctx()),
        )

    async def set_view(
        self,
        status_filter: str | None = None,
        search: str | None = None,
        sort: str | None = None,
    ) -> None:
        self._view = DashboardView.build(
            status_filter=status_filter if status_filter is not None else self._view.status_filter,
            search=search if search is not None else self._view.search,
            sort=sort if sort is not None else self._view.sort.value,
        )
        await self._emit()

    async def set_sound_enabled(self, enabled: bool) -> None:
        self._sound_enabled = enabled
        await self._state_changed()

    async def arm_audio(self) -> bool:
        armed = await self._player.arm()
        await self._state_changed()
        return armed

    def snapshot(self) -> DashboardSnapshotResponse:
        return to_dashboard_snapshot_response(
            visible_orders=self._view.apply(self._orders),
            counts=status_counts(self._orders),
            unread=unread_count(self._orders),
            view=self._view,
            sound_enabled=self._sound_enabled,
            alerting=self._player.is_playing,
            audio_armed=self._player.armed,
        )

    async def _on_change(self, event: OrderChanged) -> None:
        logger.debug(
            "dashboard_change_received",
            extra={
                "session_id": self.session_id,
                "event_type": event.kind.value,
                "order_id": event.row_id,
            },
        )
        await self.refresh("change")

    async def _poll(self) -> None:
        while not self._closed:
            await asyncio.sleep(self._poll_seconds)
            try:
                await self.refresh("poll")
            except Exception:
                logger.warning(
                    "dashboard_poll_failed",
                    extra={"session_id": self.session_id},
                    exc_info=True,
                )

    async def _call_store(self, action: str, order_id: str, call: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(call)
        except Exception:
            logger.warning(
                "dashboard_action_failed",
                extra={"session_id": self.session_id, "order_id": order_id, "reason": action},
                exc_info=True,
            )
            await self.refresh("reconcile")
            raise

    async def _close_subscription(self, subscription: ChangeSubscription) -> None:
        try:
            await subscription.close()
        except Exception:
            logger.warning(
                "dashboard_subscription_close_failed",
                extra={"session_id": self.session_id},
                exc_info=True,
            )

    async def _patch_transition(self, order_id: str, step: Callable[[Order], Order]) -> None:
        current = self._find(order_id)
        if current is None:
            return
        try:
            patched = step(current)
        except OrderTransitionError:
            # the local copy may lag the store; judge again on fresh state
            await self.refresh("reconcile")
            current = self._find(order_id)
            if current is None:
                return
            try:
                patched = step(current)
            except OrderTransitionError as exc:
                raise InvalidOrderTransitionError(str(exc)) from exc
        await self._patch(patched)

    async def _patch(self, updated: Order) -> None:
        self._orders = [
            updated if order.order_id == updated.order_id else order for order in self._orders
        ]
        await self._state_changed()

    async def _state_changed(self) -> None:
        self._sync_player()
        await self._emit()

    def _sync_player(self) -> None:
        if self._closed:
            return
        if self._sound_enabled and unread_count(self._orders) > 0:
            self._player.start()
        else:
            self._player.stop()

    async def _emit(self) -> None:
        if self._closed:
            return
        await self._on_snapshot(self.snapshot())

    def _find(self, order_id: str) -> Order | None:
        for order in self._orders:
            if order.order_id == order_id:
                return order
        return None

    def _trace_ctx(self) -> TraceContext:
        return TraceContext.detached(request_id=self.session_id)


def _now() -> datetime:
    return datetime.now(timezone.utc)
