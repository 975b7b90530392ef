from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_CHANGE_KINDS = frozenset(ChangeKind)


@dataclass(frozen=True)
class OrderChanged:
    kind: ChangeKind
    table: str
    row_id: str | None
    occurred_at: datetime
