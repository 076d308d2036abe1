"""Application-level ports for synthesis, playback and recognition."""

from __future__ import annotations

from typing import Protocol, Sequence

from ..domain.events import RecognitionResult, SpeechRequest


class SpeechTransport(Protocol):
    """Blocking text-to-audio call; runs in a worker thread."""

    def synthesize(self, speech: SpeechRequest) -> bytes: ...


class AudioBackend(Protocol):
    def load(self, path: str) -> None: ...

    def play(self) -> None: ...

    def stop(self) -> None: ...

    def status(self) -> str: ...

    def unload(self) -> None: ...

    def release(self) -> None: ...


class RecognitionListener(Protocol):
    """Receives recognizer events on the event loop thread."""

    def on_start(self) -> None: ...

    def on_result(self, results: Sequence[RecognitionResult]) -> None: ...

    def on_error(self, code: str, message: str | None = None) -> None: ...

    def on_end(self) -> None: ...


class RecognizerHandle(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...


class RecognitionProvider(Protocol):
    """Platform recognizer factory; availability is probed once per session."""

    def available(self) -> bool: ...

    def create_session(self, options, listener: RecognitionListener) -> RecognizerHandle: ...
