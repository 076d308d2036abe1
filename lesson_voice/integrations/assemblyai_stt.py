"""Live microphone recognition through the AssemblyAI streaming API."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Optional

from ..domain.errors import RecognitionError, RecognitionErrorCategory
from ..domain.events import RecognitionResult

try:
    import assemblyai as _aai
    from assemblyai.streaming.v3 import (
        StreamingClient,
        StreamingClientOptions,
        StreamingEvents,
        StreamingParameters,
    )
except Exception:  # pragma: no cover - optional at import time
    _aai = None
    StreamingClient = None
    StreamingClientOptions = None
    StreamingEvents = None
    StreamingParameters = None


def _average_confidence(words: Any) -> Optional[float]:
    values = []
    for word in words or ():
        confidence = getattr(word, "confidence", None)
        if confidence is not None:
            values.append(float(confidence))
    if not values:
        return None
    return sum(values) / len(values)


class AssemblyAIRecognizerHandle:
    """One listening attempt: a streaming client fed by the microphone on a daemon thread.

    SDK callbacks run on the client's own threads; every listener call is
    posted back to ``loop`` so the session only ever sees them on its loop.
    """

    def __init__(
        self,
        options,
        listener,
        *,
        api_key: str,
        sample_rate: int,
        loop: asyncio.AbstractEventLoop,
        logger: logging.Logger,
        client_factory: Callable[..., Any] | None = None,
        microphone_factory: Callable[..., Any] | None = None,
    ) -> None:
        self.options = options
        self.listener = listener
        self.api_key = api_key
        self.sample_rate = sample_rate
        self.loop = loop
        self.logger = logger
        self._client_factory = client_factory or self._default_client
        self._microphone_factory = microphone_factory or self._default_microphone
        self._lock = threading.Lock()
        self._client = None
        self._microphone = None
        self._thread: threading.Thread | None = None
        self._stop_requested = False
        self._ended = False

    def _default_client(self):
        return StreamingClient(StreamingClientOptions(api_key=self.api_key))

    def _default_microphone(self):
        return _aai.extras.MicrophoneStream(sample_rate=self.sample_rate)

    def _post(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            self.loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            self.logger.debug("Recognition event dropped: event loop is closed")

    def _post_end(self) -> None:
        with self._lock:
            if self._ended:
                return
            self._ended = True
        self._post(self.listener.on_end)

    def _on_begin(self, _client, event) -> None:
        self.logger.debug("AssemblyAI session started: %s", getattr(event, "id", "?"))
        self._post(self.listener.on_start)

    def _on_turn(self, _client, event) -> None:
        transcript = (getattr(event, "transcript", "") or "").strip()
        if not transcript:
            return
        end_of_turn = bool(getattr(event, "end_of_turn", False))
        formatted = bool(getattr(event, "turn_is_formatted", False))
        # With format_turns the end of a turn arrives twice; only the formatted copy is final.
        is_final = end_of_turn and formatted
        if not is_final and not getattr(self.options, "interim_results", True):
            return
        result = RecognitionResult(
            transcript=transcript,
            is_final=is_final,
            confidence=_average_confidence(getattr(event, "words", None)),
        )
        self._post(self.listener.on_result, [result])
        if is_final and not getattr(self.options, "continuous", False):
            self.stop()

    def _on_termination(self, _client, event) -> None:
        self.logger.debug(
            "AssemblyAI session terminated: audio=%ss",
            getattr(event, "audio_duration_seconds", "?"),
        )
        self._post_end()

    def _on_error(self, _client, error) -> None:
        self.logger.warning("AssemblyAI streaming error: %s", error)
        self._post(self.listener.on_error, "network", str(error))
        self.stop()

    def _connect(self):
        client = self._client_factory()
        client.on(StreamingEvents.Begin, self._on_begin)
        client.on(StreamingEvents.Turn, self._on_turn)
        client.on(StreamingEvents.Termination, self._on_termination)
        client.on(StreamingEvents.Error, self._on_error)
        client.connect(StreamingParameters(sample_rate=self.sample_rate, format_turns=True))
        return client

    def _run(self) -> None:
        try:
            client = self._connect()
        except Exception as exc:
            self.logger.warning("AssemblyAI connect failed: %s", exc)
            self._post(self.listener.on_error, "network", str(exc))
            self._post_end()
            return
        self._client = client
        try:
            try:
                microphone = self._microphone_factory()
            except Exception as exc:
                self.logger.warning("Microphone open failed: %s", exc)
                self._post(self.listener.on_error, "audio-capture", str(exc))
                return
            self._microphone = microphone
            if self._stop_requested:
                return
            client.stream(microphone)
        except Exception as exc:
            self.logger.exception("AssemblyAI streaming failed")
            self._post(self.listener.on_error, "network", str(exc))
        finally:
            self._close_microphone()
            try:
                client.disconnect(terminate=True)
            except Exception as exc:
                self.logger.debug("AssemblyAI disconnect failed: %s", exc)
            self._post_end()

    def _close_microphone(self) -> None:
        microphone = self._microphone
        if microphone is None:
            return
        try:
            microphone.close()
        except Exception as exc:
            self.logger.debug("Microphone close failed: %s", exc)

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run,
            name="assemblyai-stream",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        # Closing the microphone ends client.stream(); the worker then disconnects.
        self._stop_requested = True
        self._close_microphone()

    def abort(self) -> None:
        self.stop()


class AssemblyAIRecognitionProvider:
    def __init__(
        self,
        api_key: str,
        sample_rate: int = 16000,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.sample_rate = int(sample_rate)
        self.logger = logger or logging.getLogger("lesson_voice")

    def available(self) -> bool:
        return _aai is not None and StreamingClient is not None and bool(self.api_key)

    def create_session(self, options, listener) -> AssemblyAIRecognizerHandle:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RecognitionError(
                RecognitionErrorCategory.UNKNOWN,
                detail="listening needs a running asyncio event loop",
            ) from None
        if getattr(options, "lang", "") and not str(options.lang).lower().startswith("en"):
            self.logger.debug(
                "AssemblyAI streaming model picks the language itself; requested %s",
                options.lang,
            )
        return AssemblyAIRecognizerHandle(
            options,
            listener,
            api_key=self.api_key,
            sample_rate=self.sample_rate,
            loop=loop,
            logger=self.logger,
        )
