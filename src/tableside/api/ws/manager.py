from __future__ import annotations

import asyncio
import logging

from tableside.application.dashboard.controller import DashboardController

logger = logging.getLogger(__name__)


class DashboardSessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, DashboardController] = {}
        self._lock = asyncio.Lock()

    @property
    def count(self) -> int:
        return len(self._sessions)

    async def register(self, controller: DashboardController) -> None:
        async with self._lock:
            self._sessions[controller.session_id] = controller
        logger.info("ws_dashboard_connected", extra={"session_id": controller.session_id})

    async def unregister(self, controller: DashboardController) -> None:
        async with self._lock:
            removed = self._sessions.pop(controller.session_id, None)
        if removed is None:
            return
        await removed.unmount()
        logger.info("ws_dashboard_disconnected", extra={"session_id": controller.session_id})

    async def close_all(self) -> None:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for controller in sessions:
            await controller.unmount()
        if sessions:
            logger.info("ws_dashboard_sessions_closed", extra={"reason": f"{len(sessions)} sessions"})
