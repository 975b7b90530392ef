from __future__ import annotations

from dataclasses import dataclass

from tableside.domain.common.ids import CategoryId, MenuItemId
from tableside.domain.common.money import Money


@dataclass(frozen=True)
class MenuItemRef:
    """Catalog entry as seen by a client-side cart; a lookup, never owned."""

    item_id: MenuItemId
    name: str
    price: Money
    category_id: CategoryId | None = None
    category_name: str | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")
