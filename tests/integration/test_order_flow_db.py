from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from fastapi.testclient import TestClient

from tableside.api.main import create_app
from tableside.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository


def test_order_lifecycle_against_postgres() -> None:
    with TestClient(create_app()) as client:
        created = client.post(
            "/v1/orders",
            json={
                "tableNumber": 5,
                "items": [
                    {"name": "Griot", "price": "100", "quantity": 2},
                    {"name": "Jus", "price": "50", "quantity": 1},
                ],
            },
        )
        assert created.status_code == 201
        order_id = created.json()["orderId"]

        for expected in ("preparing", "ready", "delivered"):
            response = client.post(f"/v1/orders/{order_id}/advance")
            assert response.status_code == 200
            assert response.json()["order"]["status"] == expected

        blocked = client.post(f"/v1/orders/{order_id}/advance")
        assert blocked.status_code == 409

    stored = SqlAlchemyOrderRepository().get(order_id)
    assert stored is not None
    assert stored.total_amount.amount == Decimal("250.00")
    assert stored.is_read is True
    assert len(stored.items) == 2


def test_delete_cascades_to_items_in_postgres() -> None:
    with TestClient(create_app()) as client:
        order_id = client.post(
            "/v1/orders",
            json={"tableNumber": 2, "items": [{"name": "Lambi", "price": "400", "quantity": 1}]},
        ).json()["orderId"]

        assert client.delete(f"/v1/orders/{order_id}").status_code == 204

    assert SqlAlchemyOrderRepository().get(order_id) is None
