"""Turn-taking between listening and speaking for one voice conversation."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..domain.errors import (
    RECOGNITION_UNAVAILABLE_MESSAGE,
    SPEAK_FAILED_MESSAGE,
    RecognitionError,
    VoiceError,
    describe_error,
)
from ..domain.events import (
    PlaybackState,
    SessionState,
    SpeechRequest,
    TranscriptEvent,
    VoiceStatus,
)
from ..domain.numerals import replace_numbers_in_text
from ..domain.splitting import is_speakable, split_sentences
from .ports import RecognitionProvider
from .recognition import RecognitionOptions, RecognitionSession
from .synthesis import SynthesisClient


@dataclass(frozen=True)
class VoiceOptions:
    language: str = "ru-RU"
    tts_voice: str = "nova"
    tts_speed: float = 1.0
    tts_model: str = "tts-1"
    continuous: bool = False
    interim_results: bool = True
    sentence_pause: float = 0.3
    min_sentence_chars: int = 3
    # None disables barge-in on interim transcripts.
    interim_barge_in_confidence: Optional[float] = None


@dataclass
class VoiceCallbacks:
    on_listening_start: Optional[Callable[[], None]] = None
    on_listening_end: Optional[Callable[[], None]] = None
    on_transcript: Optional[Callable[[str, bool], None]] = None
    on_error: Optional[Callable[[str], None]] = None
    on_play_start: Optional[Callable[[], None]] = None
    on_play_end: Optional[Callable[[], None]] = None


class CancellationToken:
    """Cooperative stop flag owned by one speak_text call."""

    def __init__(self) -> None:
        self.cancelled = False
        self.reason: str | None = None

    def cancel(self, reason: str = "stopped") -> None:
        if not self.cancelled:
            self.cancelled = True
            self.reason = reason


class VoiceCoordinator:
    """Owns one recognition session and one synthesis client.

    Spoken replies are played sentence by sentence. A final transcript while
    speaking (or an explicit start_listening) interrupts the reply.
    """

    def __init__(
        self,
        synthesis: SynthesisClient,
        recognition_provider: RecognitionProvider,
        options: VoiceOptions | None = None,
        callbacks: VoiceCallbacks | None = None,
        logger: logging.Logger | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.synthesis = synthesis
        self.recognition_provider = recognition_provider
        self.options = options or VoiceOptions()
        self.callbacks = callbacks or VoiceCallbacks()
        self.logger = logger or logging.getLogger("lesson_voice")
        self._sleep = sleep
        self.session: RecognitionSession | None = None
        self.playback_state = PlaybackState.IDLE
        self.disposed = False
        self._token: CancellationToken | None = None
        self._pending: list[str] = []
        self._current_index: int | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    def _emit(self, name: str, *args) -> None:
        callback = getattr(self.callbacks, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            self.logger.exception("Voice callback %s failed", name)

    def _report_error(self, message: str) -> None:
        self._emit("on_error", message)

    # Lifecycle

    def init(self) -> bool:
        """Create the recognition session; returns whether recognition is available."""
        if self.session is not None:
            return self.session.available
        self.session = RecognitionSession(
            self.recognition_provider,
            RecognitionOptions(
                lang=self.options.language,
                continuous=self.options.continuous,
                interim_results=self.options.interim_results,
            ),
            on_start=self._on_session_start,
            on_transcript=self._on_session_transcript,
            on_error=self._on_session_error,
            on_end=self._on_session_end,
            logger=self.logger,
        )
        if not self.session.available:
            self._report_error(RECOGNITION_UNAVAILABLE_MESSAGE)
        return self.session.available

    def dispose(self) -> None:
        if self.disposed:
            return
        self.reset()
        if self.session is not None:
            self.session.dispose()
        self.synthesis.close()
        self.callbacks = VoiceCallbacks()
        self.disposed = True
        self.logger.debug("Voice coordinator disposed")

    # Speaking

    def _interrupt(self, reason: str) -> None:
        token = self._token
        if token is not None:
            token.cancel(reason)
        self._pending = []
        self.synthesis.stop()
        if self.playback_state is PlaybackState.SPEAKING:
            self.logger.info("Speech interrupted: %s", reason)
        self.playback_state = PlaybackState.IDLE

    async def speak_text(
        self,
        text: str,
        *,
        voice: str | None = None,
        speed: float | None = None,
        model: str | None = None,
    ) -> None:
        """Speak ``text`` sentence by sentence; returns when done, stopped or interrupted."""
        if self.disposed or not text or not text.strip():
            return
        voice = voice or self.options.tts_voice
        speed = self.options.tts_speed if speed is None else speed
        model = model or self.options.tts_model
        try:
            SpeechRequest(text, voice=voice, speed=speed, model=model)
        except ValueError as exc:
            self.logger.warning("Rejected speech settings: %s", exc)
            self._report_error(str(exc))
            return

        while not self._idle.is_set():
            self._interrupt("superseded")
            await self._idle.wait()
        self._idle.clear()
        token = CancellationToken()
        self._token = token
        try:
            units = split_sentences(replace_numbers_in_text(text))
            self._pending = list(units)
            self.playback_state = PlaybackState.SPEAKING
            self.logger.info("Speaking %s units", len(units))
            self._emit("on_play_start")
            await self._play_units(units, token, voice=voice, speed=speed, model=model)
        finally:
            if self._token is token:
                self._token = None
                self.playback_state = PlaybackState.IDLE
                self._pending = []
                self._current_index = None
            self._emit("on_play_end")
            self._idle.set()

    async def _play_units(
        self,
        units: list[str],
        token: CancellationToken,
        *,
        voice: str,
        speed: float,
        model: str,
    ) -> None:
        attempted = 0
        for index, unit in enumerate(units):
            if token.cancelled:
                self.logger.debug("Playback canceled before unit %s (%s)", index, token.reason)
                return
            if not is_speakable(unit, self.options.min_sentence_chars):
                self.logger.debug("Skipping noise unit %s: %r", index, unit)
                continue
            if attempted and self.options.sentence_pause > 0:
                await self._sleep(self.options.sentence_pause)
                if token.cancelled:
                    self.logger.debug("Playback canceled after pause (%s)", token.reason)
                    return
            attempted += 1
            self._current_index = index
            self._pending = list(units[index + 1 :])
            try:
                await self.synthesis.speak(unit, voice=voice, speed=speed, model=model)
            except VoiceError as exc:
                if exc.fatal:
                    self.logger.error("Speech aborted at unit %s: %s", index, exc)
                    self._report_error(describe_error(exc))
                    return
                self.logger.warning("Skipping unit %s after synthesis failure: %s", index, exc)
            except Exception:
                self.logger.exception("Unexpected failure while speaking unit %s", index)
                self._report_error(SPEAK_FAILED_MESSAGE)
                return

    def stop_speaking(self) -> None:
        if self.playback_state is PlaybackState.IDLE:
            return
        self._interrupt("stopped")

    def stop(self) -> None:
        self.stop_speaking()

    # Listening

    def start_listening(self) -> bool:
        """Start a listening attempt, interrupting any speech first.

        Call it from the thread running the event loop; recognizer events are
        posted back to that loop.
        """
        if self.disposed:
            return False
        if self.session is None:
            self.init()
        if self.playback_state is PlaybackState.SPEAKING or self.synthesis.is_playing():
            self._interrupt("barge-in")
        return self.session.start()

    def stop_listening(self) -> None:
        if self.session is not None:
            self.session.stop()

    def abort_listening(self) -> None:
        if self.session is not None:
            self.session.abort()

    def reset(self) -> None:
        self._interrupt("reset")
        self._current_index = None
        if self.session is not None:
            self.session.abort()
            self.session.current_transcript = ""

    def get_status(self) -> VoiceStatus:
        session = self.session
        session_state = session.state if session is not None else SessionState.IDLE
        return VoiceStatus(
            is_listening=session_state is not SessionState.IDLE,
            is_playing=self.playback_state is PlaybackState.SPEAKING,
            current_transcript=session.current_transcript if session is not None else "",
            recognition_available=session.available if session is not None else False,
            session_state=session_state,
            playback_state=self.playback_state,
            pending_units=len(self._pending),
            current_index=self._current_index,
        )

    # Session events

    def _on_session_start(self) -> None:
        self._emit("on_listening_start")

    def _on_session_end(self) -> None:
        self._emit("on_listening_end")

    def _on_session_error(self, error: RecognitionError) -> None:
        self._report_error(describe_error(error))

    def _should_barge_in(self, event: TranscriptEvent) -> bool:
        if self.playback_state is not PlaybackState.SPEAKING:
            return False
        if event.is_final:
            return True
        threshold = self.options.interim_barge_in_confidence
        return threshold is not None and event.confidence is not None and event.confidence >= threshold

    def _on_session_transcript(self, event: TranscriptEvent) -> None:
        if self._should_barge_in(event):
            self._interrupt("barge-in")
        self._emit("on_transcript", event.text, event.is_final)
