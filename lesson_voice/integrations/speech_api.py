"""Speech synthesis over the OpenAI-compatible ``/api/audio/speech`` endpoint."""
from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any

from ..domain.errors import (
    SpeechApiError,
    SpeechTransportError,
    UnsupportedAudioError,
)
from ..domain.events import SpeechRequest

SPEECH_PATH = "/api/audio/speech"
# Statuses that mean no text will ever be playable in this environment.
UNSUPPORTED_STATUSES = {415}
ACCEPTED_CONTENT_TYPES = ("audio/", "application/octet-stream")


def _normalize_base_url(base_url: str) -> str:
    normalized = (base_url or "").strip().rstrip("/")
    if not normalized:
        raise SpeechTransportError("Speech API base URL is empty.")
    if normalized.endswith(SPEECH_PATH):
        normalized = normalized[: -len(SPEECH_PATH)]
    return normalized


def _extract_error_message(raw: str) -> str:
    text = (raw or "").strip()
    if not text:
        return "No body"
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError:
        return text[:500]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return text[:500]


class SpeechApiClient:
    """Blocking HTTP client for the synthesis endpoint; run it off the event loop."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        timeout_seconds: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.endpoint = f"{_normalize_base_url(base_url)}{SPEECH_PATH}"
        self.api_key = (api_key or "").strip()
        self.timeout_seconds = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None
        self.logger = logger or logging.getLogger("lesson_voice")

    def _build_request(self, speech: SpeechRequest) -> urllib.request.Request:
        headers = {
            "Content-Type": "application/json",
            "Accept": speech.mime_type,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return urllib.request.Request(
            self.endpoint,
            data=json.dumps(speech.to_payload()).encode("utf-8"),
            headers=headers,
            method="POST",
        )

    def synthesize(self, speech: SpeechRequest) -> bytes:
        """Return the encoded audio for ``speech`` or raise a SynthesisError."""
        http_request = self._build_request(speech)
        self.logger.debug(
            "TTS request: endpoint=%s model=%s voice=%s speed=%s chars=%s",
            self.endpoint,
            speech.model,
            speech.voice,
            speech.speed,
            len(speech.text),
        )
        try:
            if self.timeout_seconds is None:
                response_ctx = urllib.request.urlopen(http_request)
            else:
                response_ctx = urllib.request.urlopen(http_request, timeout=self.timeout_seconds)
            with response_ctx as response:
                content_type = response.headers.get_content_type()
                payload = response.read()
        except urllib.error.HTTPError as exc:
            raw_error = exc.read().decode("utf-8", errors="replace")
            message = f"TTS API HTTP {exc.code}: {_extract_error_message(raw_error)}"
            if exc.code in UNSUPPORTED_STATUSES:
                raise UnsupportedAudioError(message) from exc
            raise SpeechApiError(message, status=exc.code) from exc
        except urllib.error.URLError as exc:
            raise SpeechTransportError(f"Failed to reach TTS endpoint: {self.endpoint}") from exc
        except TimeoutError as exc:
            raise SpeechTransportError("TTS request timed out.") from exc
        except OSError as exc:
            raise SpeechTransportError(f"TTS connection error: {exc}") from exc

        if not content_type.startswith(ACCEPTED_CONTENT_TYPES):
            raise UnsupportedAudioError(f"TTS endpoint returned {content_type}, not audio.")
        if not payload:
            raise SpeechApiError("TTS endpoint returned an empty audio payload.")
        self.logger.debug("TTS audio received: %s bytes (%s)", len(payload), content_type)
        return payload
