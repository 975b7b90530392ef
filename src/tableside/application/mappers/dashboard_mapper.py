from __future__ import annotations

from tableside.application.dto.responses import DashboardSnapshotResponse, StatusCountsResponse
from tableside.application.dashboard.view import DashboardView
from tableside.application.mappers.order_mapper import to_order_response
from tableside.domain.order.entities import Order


def to_status_counts_response(counts: dict[str, int]) -> StatusCountsResponse:
    return StatusCountsResponse(**counts)


def to_dashboard_snapshot_response(
    *,
    visible_orders: list[Order],
    counts: dict[str, int],
    unread: int,
    view: DashboardView,
    sound_enabled: bool,
    alerting: bool,
    audio_armed: bool,
) -> DashboardSnapshotResponse:
    return DashboardSnapshotResponse(
        orders=[to_order_response(order) for order in visible_orders],
        counts=to_status_counts_response(counts),
        unreadCount=unread,
        soundEnabled=sound_enabled,
        alerting=alerting,
        audioArmed=audio_armed,
        statusFilter=view.status_filter,
        search=view.search,
        sort=view.sort.value,
    )
