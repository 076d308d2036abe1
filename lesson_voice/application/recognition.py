"""Listening session state machine on top of a platform recognizer."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ..domain.errors import RecognitionError, RecognitionErrorCategory
from ..domain.events import RecognitionResult, SessionState, TranscriptEvent
from .ports import RecognitionProvider, RecognizerHandle


@dataclass(frozen=True)
class RecognitionOptions:
    lang: str = "ru-RU"
    continuous: bool = False
    interim_results: bool = True
    max_alternatives: int = 1


def _join_segments(results: Sequence[RecognitionResult]) -> str:
    return " ".join(r.transcript.strip() for r in results if r.transcript and r.transcript.strip())


def _mean_confidence(results: Sequence[RecognitionResult]) -> Optional[float]:
    known = [r.confidence for r in results if r.confidence is not None]
    if not known:
        return None
    return sum(known) / len(known)


class _Attempt:
    """Listener bound to one start() call; events of a superseded attempt are dropped."""

    def __init__(self, session: "RecognitionSession") -> None:
        self.session = session

    def _current(self) -> bool:
        return self.session._attempt is self

    def on_start(self) -> None:
        if self._current():
            self.session._handle_start()

    def on_result(self, results: Sequence[RecognitionResult]) -> None:
        if self._current():
            self.session._handle_result(results)

    def on_error(self, code: str, message: str | None = None) -> None:
        if self._current():
            self.session._handle_error(code, message)

    def on_end(self) -> None:
        if self._current():
            self.session._handle_end()


class RecognitionSession:
    def __init__(
        self,
        provider: RecognitionProvider,
        options: RecognitionOptions | None = None,
        *,
        on_start: Callable[[], None] | None = None,
        on_transcript: Callable[[TranscriptEvent], None] | None = None,
        on_error: Callable[[RecognitionError], None] | None = None,
        on_end: Callable[[], None] | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.provider = provider
        self.options = options or RecognitionOptions()
        self.on_start = on_start
        self.on_transcript = on_transcript
        self.on_error = on_error
        self.on_end = on_end
        self.logger = logger or logging.getLogger("lesson_voice")
        self.clock = clock
        self.state = SessionState.IDLE
        self.current_transcript = ""
        self.disposed = False
        self._handle: RecognizerHandle | None = None
        self._attempt: _Attempt | None = None
        try:
            self.available = bool(provider.available())
        except Exception:
            self.logger.exception("Speech recognition capability check failed")
            self.available = False
        if not self.available:
            self.logger.warning("Speech recognition is not available in this environment")

    @property
    def is_listening(self) -> bool:
        return self.state is not SessionState.IDLE

    def _emit(self, name: str, *args) -> None:
        callback = getattr(self, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            self.logger.exception("Recognition callback %s failed", name)

    def _finish(self) -> None:
        self.state = SessionState.IDLE
        self._handle = None
        self._attempt = None

    def start(self) -> bool:
        if self.disposed:
            self.logger.debug("Recognition start ignored: session disposed")
            return False
        if not self.available:
            self.logger.warning("Recognition start refused: capability unavailable")
            return False
        if self.state is not SessionState.IDLE:
            self.logger.debug("Recognition start ignored: state=%s", self.state.value)
            return False

        attempt = _Attempt(self)
        self._attempt = attempt
        self.current_transcript = ""
        self.state = SessionState.LISTENING
        try:
            handle = self.provider.create_session(self.options, attempt)
            self._handle = handle
            handle.start()
        except Exception as exc:
            self.logger.exception("Failed to start speech recognition")
            self._finish()
            if isinstance(exc, RecognitionError):
                error = exc
            else:
                error = RecognitionError(RecognitionErrorCategory.UNKNOWN, detail=str(exc))
            self._emit("on_error", error)
            return False
        self.logger.info("Listening started (lang=%s continuous=%s)", self.options.lang, self.options.continuous)
        return True

    def stop(self) -> None:
        if self.state is not SessionState.LISTENING:
            return
        self.state = SessionState.STOPPING
        handle = self._handle
        if handle is not None:
            try:
                handle.stop()
            except Exception:
                self.logger.exception("Recognizer stop failed")
                self._finish()
                self._emit("on_end")

    def abort(self) -> None:
        if self.state is SessionState.IDLE and self._handle is None:
            return
        handle = self._handle
        self._finish()
        self.current_transcript = ""
        if handle is not None:
            try:
                handle.abort()
            except Exception:
                self.logger.exception("Recognizer abort failed")
        self.logger.debug("Listening aborted")
        self._emit("on_end")

    def dispose(self) -> None:
        self.abort()
        self.on_start = None
        self.on_transcript = None
        self.on_error = None
        self.on_end = None
        self.disposed = True

    def _handle_start(self) -> None:
        self._emit("on_start")

    def _handle_result(self, results: Sequence[RecognitionResult]) -> None:
        if self.state is SessionState.IDLE:
            return
        interim = [r for r in results if not r.is_final]
        final = [r for r in results if r.is_final]
        interim_text = _join_segments(interim)
        final_text = _join_segments(final)
        if interim_text:
            self.current_transcript = interim_text
            self._emit(
                "on_transcript",
                TranscriptEvent(interim_text, False, _mean_confidence(interim), self.clock()),
            )
        if final_text:
            self.current_transcript = final_text
            self.logger.debug("Final transcript: %s chars", len(final_text))
            self._emit(
                "on_transcript",
                TranscriptEvent(final_text, True, _mean_confidence(final), self.clock()),
            )

    def _handle_error(self, code: str, message: str | None) -> None:
        error = RecognitionError.from_code(code, detail=message)
        self.logger.warning("Recognition error: code=%s detail=%s", error.code, message)
        handle = self._handle
        # The attempt stays bound so the platform end event still reaches on_end.
        self.state = SessionState.IDLE
        self._handle = None
        if handle is not None:
            try:
                handle.abort()
            except Exception:
                self.logger.exception("Recognizer abort after error failed")
        self._emit("on_error", error)

    def _handle_end(self) -> None:
        self._finish()
        self.logger.debug("Listening ended")
        self._emit("on_end")
