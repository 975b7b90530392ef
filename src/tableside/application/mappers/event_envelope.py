from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from tableside.domain.order.events import ChangeKind, OrderChanged


class InvalidChangeEnvelopeError(Exception):
    pass


def serialize_change_event(
    *,
    event: OrderChanged,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event.kind.value,
        "table": event.table,
        "row_id": event.row_id,
        "occurred_at": event.occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def parse_change_event(raw: str) -> OrderChanged:
    """Read back only what a subscriber relies on; the row id is a hint."""
    try:
        envelope: dict[str, Any] = json.loads(raw)
        kind = ChangeKind(str(envelope["event_type"]).upper())
        table = str(envelope["table"])
    except (ValueError, KeyError, TypeError) as exc:
        raise InvalidChangeEnvelopeError("invalid change event envelope") from exc

    occurred_at = datetime.now(timezone.utc)
    raw_occurred_at = envelope.get("occurred_at")
    if isinstance(raw_occurred_at, str):
        try:
            occurred_at = datetime.fromisoformat(raw_occurred_at)
        except ValueError:
            pass

    row_id = envelope.get("row_id")
    return OrderChanged(
        kind=kind,
        table=table,
        row_id=str(row_id) if row_id is not None else None,
        occurred_at=occurred_at,
    )
