from __future__ import annotations

from dataclasses import dataclass

from tableside.domain.common.ids import MenuItemId
from tableside.domain.common.money import Money
from tableside.domain.menu.entities import MenuItemRef

UNCATEGORIZED = "Other"


@dataclass(frozen=True)
class CartLine:
    item: MenuItemRef
    quantity: int

    @property
    def line_total(self) -> Money:
        return self.item.price.times(self.quantity)


class Cart:
    """Client-side selection of menu items, keyed by menu item id.

    Line order follows first insertion. Nothing here touches the store;
    ``CheckoutFlow`` turns a cart into an order.
    """

    def __init__(self, currency: str) -> None:
        self._currency = currency
        self._lines: dict[MenuItemId, CartLine] = {}

    @property
    def currency(self) -> str:
        return self._currency

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def add(self, item: MenuItemRef, quantity: int = 1) -> None:
        if quantity < 1:
            raise ValueError("quantity must be >= 1")
        if item.price.currency != self._currency:
            raise ValueError(
                f"item {item.name!r} is priced in {item.price.currency}, cart is {self._currency}"
            )
        existing = self._lines.get(item.item_id)
        if existing is not None:
            quantity += existing.quantity
        self._lines[item.item_id] = CartLine(item=item, quantity=quantity)

    def remove(self, item_id: MenuItemId) -> None:
        self._lines.pop(item_id, None)

    def update_quantity(self, item_id: MenuItemId, quantity: int) -> None:
        if quantity <= 0:
            self.remove(item_id)
            return
        existing = self._lines.get(item_id)
        if existing is None:
            return
        self._lines[item_id] = CartLine(item=existing.item, quantity=quantity)

    def clear(self) -> None:
        self._lines.clear()

    def total(self) -> Money:
        total = Money.zero(self._currency)
        for line in self._lines.values():
            total = total + line.line_total
        return total

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def lines_by_category(self) -> dict[str, list[CartLine]]:
        grouped: dict[str, list[CartLine]] = {}
        for line in self._lines.values():
            grouped.setdefault(line.item.category_name or UNCATEGORIZED, []).append(line)
        return grouped
