"""Synthesis client: one unit of text in, one finished playback out."""
from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from typing import Callable

from ..domain.errors import (
    PlaybackBlockedError,
    PlaybackError,
    SynthesisError,
    VoiceError,
)
from ..domain.events import SpeechRequest
from ..domain.normalization import TextNormalizer
from .ports import AudioBackend, SpeechTransport

STARTED_STATUSES = {"playing", "ended"}
FINISHED_STATUSES = {"ended", "stopped", "idle"}


def _discard_late_result(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    # Retrieve the exception so the loop does not report it as unhandled.
    future.exception()


class SynthesisClient:
    """Fetches audio for one unit and plays it to the end.

    There is no queue: ``speak`` first stops whatever this client is playing.
    A payload that arrives after ``stop()`` belongs to a stale generation and
    is dropped without touching the audio backend.
    """

    def __init__(
        self,
        transport: SpeechTransport,
        audio_backend_factory: Callable[[], AudioBackend],
        normalizer: TextNormalizer,
        logger: logging.Logger | None = None,
        *,
        response_format: str = "mp3",
        poll_interval: float = 0.05,
        start_timeout: float = 5.0,
    ) -> None:
        self.transport = transport
        self.audio_backend_factory = audio_backend_factory
        self.normalizer = normalizer
        self.logger = logger or logging.getLogger("lesson_voice")
        self.response_format = response_format
        self.poll_interval = max(0.001, float(poll_interval))
        self.start_timeout = max(self.poll_interval, float(start_timeout))
        self._backend: AudioBackend | None = None
        self._generation = 0
        self._stop_event: asyncio.Event | None = None
        self._temp_path: str | None = None
        self._playing = False

    def is_playing(self) -> bool:
        return self._playing

    def _ensure_backend(self) -> AudioBackend:
        if self._backend is None:
            self._backend = self.audio_backend_factory()
        return self._backend

    def _write_temp(self, payload: bytes) -> str:
        handle = tempfile.NamedTemporaryFile(
            prefix="lesson_voice_",
            suffix=f".{self.response_format}",
            delete=False,
        )
        with handle:
            handle.write(payload)
        self._temp_path = handle.name
        return handle.name

    def _delete_temp(self) -> None:
        path = self._temp_path
        self._temp_path = None
        if not path:
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.logger.debug("Failed to delete temp audio %s: %s", path, exc)

    def _release_media(self) -> None:
        backend = self._backend
        if backend is not None:
            try:
                backend.stop()
                backend.unload()
            except Exception as exc:
                self.logger.debug("Audio backend stop failed: %s", exc)
        self._delete_temp()

    def stop(self) -> None:
        """Halt playback and drop any in-flight request; safe to call repeatedly."""
        self._generation += 1
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None
        if self._playing:
            self.logger.debug("Stopping synthesized playback")
        self._playing = False
        self._release_media()

    def close(self) -> None:
        self.stop()
        backend = self._backend
        self._backend = None
        if backend is not None:
            try:
                backend.release()
            except Exception as exc:
                self.logger.debug("Audio backend release failed: %s", exc)

    async def _fetch(
        self,
        request: SpeechRequest,
        stop_event: asyncio.Event,
    ) -> bytes | None:
        fetch = asyncio.ensure_future(asyncio.to_thread(self.transport.synthesize, request))
        stopper = asyncio.ensure_future(stop_event.wait())
        try:
            done, _ = await asyncio.wait(
                {fetch, stopper},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            fetch.add_done_callback(_discard_late_result)
            raise
        finally:
            stopper.cancel()
        if fetch not in done:
            fetch.add_done_callback(_discard_late_result)
            return None
        return fetch.result()

    async def _wait(self, stop_event: asyncio.Event) -> bool:
        """Sleep one poll interval; True when stop was requested meanwhile."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return stop_event.is_set()
        return True

    async def _wait_for_start(self, backend: AudioBackend, stop_event: asyncio.Event) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.start_timeout
        while True:
            status = backend.status()
            if status in STARTED_STATUSES:
                return True
            if status == "error":
                raise PlaybackError("Audio output reported an error while opening media.")
            if loop.time() >= deadline:
                raise PlaybackBlockedError(
                    f"Playback did not start within {self.start_timeout:.1f}s."
                )
            if await self._wait(stop_event):
                return False

    async def _wait_for_end(self, backend: AudioBackend, stop_event: asyncio.Event) -> None:
        while True:
            status = backend.status()
            if status in FINISHED_STATUSES:
                return
            if status == "error":
                raise PlaybackError("Audio output reported an error during playback.")
            if await self._wait(stop_event):
                return

    async def _play(self, payload: bytes, generation: int, stop_event: asyncio.Event) -> None:
        backend = self._ensure_backend()
        path = self._write_temp(payload)
        try:
            backend.load(path)
            backend.play()
            self._playing = True
            if await self._wait_for_start(backend, stop_event):
                await self._wait_for_end(backend, stop_event)
        except VoiceError:
            raise
        except OSError as exc:
            raise PlaybackError(f"Failed to play synthesized audio: {exc}") from exc
        finally:
            if generation == self._generation:
                self._playing = False
                self._release_media()

    async def speak(
        self,
        text: str,
        *,
        voice: str = "nova",
        speed: float = 1.0,
        model: str = "tts-1",
    ) -> None:
        """Synthesize ``text`` and return once its playback has finished or been stopped."""
        self.stop()
        generation = self._generation
        stop_event = asyncio.Event()
        self._stop_event = stop_event

        prepared = self.normalizer.preprocess(text)
        if not prepared:
            self.logger.debug("Nothing to synthesize after normalization")
            return
        request = SpeechRequest(
            prepared,
            voice=voice,
            speed=speed,
            model=model,
            response_format=self.response_format,
        )
        try:
            payload = await self._fetch(request, stop_event)
        except SynthesisError:
            raise
        except Exception as exc:
            raise SynthesisError(f"Speech synthesis failed: {exc}") from exc
        if payload is None or generation != self._generation:
            self.logger.debug("Discarding synthesized audio for a stopped request")
            return
        await self._play(payload, generation, stop_event)
