from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from tableside.api.error_handling import error_body, error_code_for
from tableside.api.middleware.request_id import get_request_id
from tableside.api.ws.manager import DashboardSessionRegistry
from tableside.api.ws.tone_sink import BrowserAudio, DashboardSocket
from tableside.application.dashboard.controller import DashboardController, OrderOperations
from tableside.application.dto.requests import DashboardCommand
from tableside.application.dto.responses import DashboardSnapshotResponse
from tableside.application.notifications.player import NotificationPlayer
from tableside.application.ports.change_feed import ChangeFeed
from tableside.application.use_cases.delete_order import DeleteOrder
from tableside.application.use_cases.list_orders import ListOrders
from tableside.application.use_cases.mark_order_read import MarkOrderAsRead
from tableside.application.use_cases.order_lifecycle import OrderLifecycle
from tableside.config import get_settings
from tableside.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from tableside.infrastructure.messaging.redis_publisher import build_event_publisher

router = APIRouter()
logger = logging.getLogger(__name__)


class DashboardCommandError(Exception):
    pass


def _order_operations() -> OrderOperations:
    order_repository = SqlAlchemyOrderRepository()
    publisher = build_event_publisher()
    return OrderOperations(
        list_orders=ListOrders(order_repository),
        lifecycle=OrderLifecycle(order_repository, publisher),
        mark_read=MarkOrderAsRead(order_repository, publisher),
        delete=DeleteOrder(order_repository, publisher),
    )


def _require_order_id(command: DashboardCommand) -> str:
    if not command.order_id:
        raise DashboardCommandError(f"command {command.type!r} requires orderId")
    return command.order_id


async def _handle_command(
    controller: DashboardController,
    audio: BrowserAudio,
    command: DashboardCommand,
) -> None:
    if command.type == "view":
        await controller.set_view(
            status_filter=command.status,
            search=command.search,
            sort=command.sort,
        )
    elif command.type == "status":
        if not command.status:
            raise DashboardCommandError("command 'status' requires status")
        await controller.change_status(_require_order_id(command), command.status)
    elif command.type == "advance":
        await controller.advance(_require_order_id(command))
    elif command.type == "read":
        await controller.mark_read(_require_order_id(command))
    elif command.type == "delete":
        await controller.delete(_require_order_id(command))
    elif command.type == "sound":
        if command.enabled is None:
            raise DashboardCommandError("command 'sound' requires enabled")
        await controller.set_sound_enabled(command.enabled)
    elif command.type == "audio.arm":
        audio.armed = True
        await controller.arm_audio()


def _reportable(exc: Exception) -> bool:
    if isinstance(exc, (DashboardCommandError, ValidationError)):
        return True
    return error_code_for(exc)[1] != "INTERNAL_ERROR"


def _error_frame(exc: Exception, command_type: str | None) -> dict[str, Any]:
    if isinstance(exc, (DashboardCommandError, ValidationError)):
        code, message = "INVALID_COMMAND", str(exc)
    else:
        _, code = error_code_for(exc)
        message = "order store is unavailable" if code == "STORE_UNAVAILABLE" else str(exc)
    details = getattr(exc, "details", None)
    return {
        "type": "error",
        "command": command_type,
        **error_body(
            code=code,
            message=message,
            details=details if isinstance(details, dict) else None,
        ),
    }


@router.websocket("/ws/dashboard")
async def dashboard_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    socket = DashboardSocket(websocket)
    audio = BrowserAudio(socket, armed=websocket.query_params.get("audio") == "armed")

    async def push_snapshot(snapshot: DashboardSnapshotResponse) -> None:
        await socket.send_json(snapshot.model_dump(mode="json"))

    settings = get_settings()
    change_feed: ChangeFeed = websocket.app.state.change_feed
    registry: DashboardSessionRegistry = websocket.app.state.dashboard_sessions
    controller = DashboardController(
        operations=_order_operations(),
        change_feed=change_feed,
        player=NotificationPlayer(audio.open_sink, settings.alert),
        on_snapshot=push_snapshot,
        poll_seconds=settings.dashboard_poll_seconds,
        session_id=get_request_id(),
    )

    await registry.register(controller)
    try:
        await controller.mount()
        while True:
            raw = await websocket.receive_text()
            command_type: str | None = None
            try:
                command = DashboardCommand.model_validate_json(raw)
                command_type = command.type
                await _handle_command(controller, audio, command)
            except Exception as exc:
                if not _reportable(exc):
                    raise
                await socket.send_json(_error_frame(exc, command_type))
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("ws_connection_error", extra={"session_id": controller.session_id})
    finally:
        await registry.unregister(controller)
