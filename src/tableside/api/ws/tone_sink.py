from __future__ import annotations

import asyncio
from typing import Any

from fastapi import WebSocket

from tableside.application.ports.audio import AudioUnavailableError, Tone, ToneSink


class DashboardSocket:
    """Serializes outgoing frames; the player and the controller both send."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._lock = asyncio.Lock()

    async def send_json(self, payload: dict[str, Any]) -> None:
        async with self._lock:
            await self._websocket.send_json(payload)


class WebSocketToneSink(ToneSink):
    """Plays tones by asking the connected browser to play them."""

    def __init__(self, socket: DashboardSocket) -> None:
        self._socket = socket
        self._closed = False

    async def play_tone(self, tone: Tone) -> None:
        if self._closed:
            raise AudioUnavailableError("tone sink is closed")
        await self._socket.send_json(
            {
                "type": "tone",
                "frequencyHz": tone.frequency_hz,
                "durationSeconds": tone.duration_seconds,
                "gain": tone.gain,
            }
        )

    async def aclose(self) -> None:
        self._closed = True


class BrowserAudio:
    """Browsers only play sound after a user gesture; ``armed`` records it."""

    def __init__(self, socket: DashboardSocket, armed: bool = False) -> None:
        self._socket = socket
        self.armed = armed

    async def open_sink(self) -> ToneSink:
        if not self.armed:
            raise AudioUnavailableError("audio has not been armed by the client")
        return WebSocketToneSink(self._socket)
