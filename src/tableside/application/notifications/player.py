from __future__ import annotations

import asyncio
import logging

from tableside.application.metrics.order_lifecycle import record_alert_burst
from tableside.application.ports.audio import AudioUnavailableError, Tone, ToneSink, ToneSinkFactory
from tableside.config import AlertSettings

logger = logging.getLogger(__name__)


class NotificationPlayer:
    """Repeating audible alert with two states, Idle and Playing.

    While Playing, a burst of ``burst_tones`` tones spaced ``tone_gap_seconds``
    apart starts every ``period_seconds``. Tones only reach a sink once
    ``arm()`` has acquired one; until then the player still tracks its state
    but stays silent. Playing is re-checked before every tone, so nothing new
    starts once ``stop()`` has returned.
    """

    def __init__(self, sink_factory: ToneSinkFactory, settings: AlertSettings) -> None:
        self._sink_factory = sink_factory
        self._settings = settings
        self._tone = Tone(
            frequency_hz=settings.tone_frequency_hz,
            duration_seconds=settings.tone_duration_seconds,
            gain=settings.tone_gain,
        )
        self._sink: ToneSink | None = None
        self._playing = False
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def armed(self) -> bool:
        return self._sink is not None

    async def arm(self) -> bool:
        if self._sink is not None:
            return True
        if self._closed:
            return False

        try:
            sink = await self._sink_factory()
        except AudioUnavailableError as exc:
            logger.info("audio_not_armed", extra={"reason": str(exc)})
            return False
        except Exception:
            logger.warning("audio_arm_failed", exc_info=True)
            return False

        if self._closed:
            await sink.aclose()
            return False
        self._sink = sink
        logger.info("audio_armed")
        return True

    def start(self) -> None:
        if self._playing or self._closed:
            return
        self._playing = True
        self._task = asyncio.get_running_loop().create_task(self._repeat())

    def stop(self) -> None:
        if not self._playing:
            return
        self._playing = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        self._closed = True
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

        sink, self._sink = self._sink, None
        if sink is not None:
            try:
                await sink.aclose()
            except Exception:
                logger.warning("audio_release_failed", exc_info=True)

    async def _repeat(self) -> None:
        loop = asyncio.get_running_loop()
        while self._playing:
            started = loop.time()
            await self._burst()
            remaining = self._settings.period_seconds - (loop.time() - started)
            await asyncio.sleep(max(remaining, 0.0))

    async def _burst(self) -> None:
        if self._sink is None:
            return
        record_alert_burst()
        for index in range(self._settings.burst_tones):
            if index:
                await asyncio.sleep(self._settings.tone_gap_seconds)
            sink = self._sink
            if not self._playing or sink is None:
                return
            try:
                await sink.play_tone(self._tone)
            except Exception:
                logger.warning("audio_tone_failed", exc_info=True)
                self._sink = None
                await _release_quietly(sink)
                return


async def _release_quietly(sink: ToneSink) -> None:
    try:
        await sink.aclose()
    except Exception:
        logger.debug("audio_release_failed", exc_info=True)
