from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum

from tableside.application.use_cases.list_orders import ALL_STATUSES, parse_status_filter
from tableside.domain.order.entities import Order
from tableside.domain.order.lifecycle import OrderStatus


class InvalidSortKeyError(Exception):
    pass


class SortKey(str, Enum):
    DATE = "date"
    TABLE = "table"
    AMOUNT = "amount"


def parse_sort_key(value: str) -> SortKey:
    try:
        return SortKey(value.strip().lower())
    except ValueError as exc:
        raise InvalidSortKeyError(f"invalid sort key: {value}") from exc


@dataclass(frozen=True)
class DashboardView:
    status_filter: str = ALL_STATUSES
    search: str = ""
    sort: SortKey = SortKey.DATE

    @classmethod
    def build(cls, status_filter: str, search: str, sort: str) -> DashboardView:
        parse_status_filter(status_filter)
        return cls(
            status_filter=status_filter.strip().lower(),
            search=search.strip(),
            sort=parse_sort_key(sort),
        )

    def apply(self, orders: list[Order]) -> list[Order]:
        status = parse_status_filter(self.status_filter)
        needle = self.search.lower()
        visible = [
            order
            for order in orders
            if (status is None or order.status == status) and _matches(order, needle)
        ]
        return sort_orders(visible, self.sort)


def _matches(order: Order, needle: str) -> bool:
    if not needle:
        return True
    if needle in str(order.table_number):
        return True
    return bool(order.customer_name) and needle in order.customer_name.lower()


def sort_orders(orders: list[Order], key: SortKey) -> list[Order]:
    if key is SortKey.TABLE:
        return sorted(orders, key=lambda order: order.table_number)
    if key is SortKey.AMOUNT:
        return sorted(orders, key=lambda order: order.total_amount.amount, reverse=True)
    return sorted(orders, key=lambda order: order.created_at, reverse=True)


def status_counts(orders: list[Order]) -> dict[str, int]:
    counts = Counter(order.status for order in orders)
    return {
        ALL_STATUSES: len(orders),
        **{status.value: counts.get(status, 0) for status in OrderStatus},
    }


def unread_count(orders: list[Order]) -> int:
    return sum(1 for order in orders if not order.is_read)
