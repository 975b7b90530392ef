from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Tone:
    frequency_hz: float
    duration_seconds: float
    gain: float


class ToneSink(Protocol):
    async def play_tone(self, tone: Tone) -> None: ...

    async def aclose(self) -> None: ...


ToneSinkFactory = Callable[[], Awaitable[ToneSink]]


class AudioUnavailableError(Exception):
    """Raised by a sink factory when playback is not permitted yet."""
