from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from tableside.domain.order.events import ChangeKind, OrderChanged

ChangeCallback = Callable[[OrderChanged], Awaitable[None]]


class ChangeSubscription(Protocol):
    @property
    def active(self) -> bool: ...

    async def close(self) -> None: ...


class ChangeFeed(Protocol):
    async def subscribe(
        self,
        table: str,
        kinds: Iterable[ChangeKind],
        callback: ChangeCallback,
    ) -> ChangeSubscription: ...
