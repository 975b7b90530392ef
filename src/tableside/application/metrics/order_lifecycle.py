from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import Counter, Gauge, Histogram

from tableside.domain.order.entities import Order
from tableside.domain.order.lifecycle import OrderStatus

ORDERS_CREATED_TOTAL = Counter(
    "tableside_orders_created_total",
    "Total number of orders created.",
)

ORDER_ITEMS_WRITE_FAILED_TOTAL = Counter(
    "tableside_order_items_write_failed_total",
    "Orders whose row was written but whose items were not.",
)

ORDER_TRANSITION_TOTAL = Counter(
    "tableside_order_transition_total",
    "Total number of order lifecycle transitions.",
    ["from", "to"],
)

ORDER_TIME_TO_STATUS_SECONDS = Histogram(
    "tableside_order_time_to_status_seconds",
    "Time between order creation and reaching a status.",
    ["status"],
)

ORDERS_DELETED_TOTAL = Counter(
    "tableside_orders_deleted_total",
    "Total number of orders deleted by staff.",
)

DASHBOARD_SESSIONS = Gauge(
    "tableside_dashboard_sessions",
    "Number of mounted staff dashboard sessions.",
)

DASHBOARD_REFRESH_TOTAL = Counter(
    "tableside_dashboard_refresh_total",
    "Dashboard full refreshes by trigger.",
    ["source"],
)

ALERT_BURSTS_TOTAL = Counter(
    "tableside_alert_bursts_total",
    "Audible alert bursts emitted by notification players.",
)


def record_order_created() -> None:
    ORDERS_CREATED_TOTAL.inc()


def record_order_items_write_failed() -> None:
    ORDER_ITEMS_WRITE_FAILED_TOTAL.inc()


def record_transition(from_status: OrderStatus, to_status: OrderStatus) -> None:
    ORDER_TRANSITION_TOTAL.labels(**{"from": from_status.value, "to": to_status.value}).inc()


def record_time_to_status(order: Order, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    ORDER_TIME_TO_STATUS_SECONDS.labels(status=order.status.value).observe(
        max((current - order.created_at).total_seconds(), 0.0)
    )


def record_order_deleted() -> None:
    ORDERS_DELETED_TOTAL.inc()


def record_dashboard_mounted() -> None:
    DASHBOARD_SESSIONS.inc()


def record_dashboard_unmounted() -> None:
    DASHBOARD_SESSIONS.dec()


def record_dashboard_refresh(source: str) -> None:
    DASHBOARD_REFRESH_TOTAL.labels(source=source).inc()


def record_alert_burst() -> None:
    ALERT_BURSTS_TOTAL.inc()
