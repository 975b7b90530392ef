from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient


def _create(client: TestClient, table_number: int) -> str:
    response = client.post(
        "/v1/orders",
        json={
            "tableNumber": table_number,
            "customerName": "Marie",
            "items": [{"name": "Griot", "price": "100", "quantity": 1}],
        },
    )
    assert response.status_code == 201
    return response.json()["orderId"]


def _next_frame(websocket, frame_type: str, limit: int = 10) -> dict[str, Any]:
    for _ in range(limit):
        frame = websocket.receive_json()
        if frame["type"] == frame_type:
            return frame
    raise AssertionError(f"no {frame_type} frame received")


def test_dashboard_pushes_snapshot_on_connect(api_client: TestClient) -> None:
    order_id = _create(api_client, 5)

    with api_client.websocket_connect("/ws/dashboard") as websocket:
        snapshot = _next_frame(websocket, "snapshot")

    assert [order["orderId"] for order in snapshot["orders"]] == [order_id]
    assert snapshot["unreadCount"] == 1
    assert snapshot["counts"]["pending"] == 1
    assert snapshot["soundEnabled"] is True
    assert snapshot["alerting"] is True
    assert snapshot["audioArmed"] is False


def test_read_command_stops_alerting(api_client: TestClient) -> None:
    order_id = _create(api_client, 5)

    with api_client.websocket_connect("/ws/dashboard") as websocket:
        _next_frame(websocket, "snapshot")
        websocket.send_json({"type": "read", "orderId": order_id})
        snapshot = _next_frame(websocket, "snapshot")

    assert snapshot["unreadCount"] == 0
    assert snapshot["alerting"] is False
    assert api_client.get(f"/v1/orders/{order_id}").json()["isRead"] is True


def test_illegal_transition_is_answered_with_error_frame(api_client: TestClient) -> None:
    order_id = _create(api_client, 5)

    with api_client.websocket_connect("/ws/dashboard") as websocket:
        _next_frame(websocket, "snapshot")
        websocket.send_json({"type": "status", "orderId": order_id, "status": "delivered"})
        error = _next_frame(websocket, "error")

    assert error["command"] == "status"
    assert error["error"]["code"] == "INVALID_ORDER_TRANSITION"
    assert api_client.get(f"/v1/orders/{order_id}").json()["status"] == "pending"


def test_malformed_command_is_answered_with_error_frame(api_client: TestClient) -> None:
    with api_client.websocket_connect("/ws/dashboard") as websocket:
        _next_frame(websocket, "snapshot")
        websocket.send_text('{"type": "dance"}')
        unknown = _next_frame(websocket, "error")
        websocket.send_json({"type": "advance"})
        missing_id = _next_frame(websocket, "error")

    assert unknown["error"]["code"] == "INVALID_COMMAND"
    assert missing_id["error"]["code"] == "INVALID_COMMAND"
    assert missing_id["command"] == "advance"


def test_view_command_filters_snapshot(api_client: TestClient) -> None:
    _create(api_client, 3)
    _create(api_client, 12)

    with api_client.websocket_connect("/ws/dashboard") as websocket:
        _next_frame(websocket, "snapshot")
        websocket.send_json({"type": "view", "search": "12", "sort": "table"})
        snapshot = _next_frame(websocket, "snapshot")

    assert [order["tableNumber"] for order in snapshot["orders"]] == [12]
    assert snapshot["counts"]["all"] == 2
    assert snapshot["search"] == "12"
    assert snapshot["sort"] == "table"


def test_armed_dashboard_receives_tone_frames(api_client: TestClient) -> None:
    _create(api_client, 5)

    with api_client.websocket_connect("/ws/dashboard?audio=armed") as websocket:
        snapshot = _next_frame(websocket, "snapshot")
        tone = _next_frame(websocket, "tone")
        websocket.send_json({"type": "sound", "enabled": False})
        muted = _next_frame(websocket, "snapshot")

    assert snapshot["audioArmed"] is True
    assert tone == {"type": "tone", "frequencyHz": 800.0, "durationSeconds": 0.3, "gain": 0.3}
    assert muted["soundEnabled"] is False
    assert muted["alerting"] is False


def test_audio_arm_command_arms_playback(api_client: TestClient) -> None:
    with api_client.websocket_connect("/ws/dashboard") as websocket:
        first = _next_frame(websocket, "snapshot")
        websocket.send_json({"type": "audio.arm"})
        armed = _next_frame(websocket, "snapshot")

    assert first["audioArmed"] is False
    assert armed["audioArmed"] is True
