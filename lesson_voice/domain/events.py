"""Value types shared by the recognition, synthesis and coordination layers."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

TTS_VOICES = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")
TTS_MODELS = ("tts-1", "tts-1-hd")
AUDIO_FORMATS = ("mp3", "aac", "opus", "flac")
AUDIO_MIME_TYPES = {
    "mp3": "audio/mpeg",
    "aac": "audio/aac",
    "opus": "audio/opus",
    "flac": "audio/flac",
}
MIN_SPEED = 0.25
MAX_SPEED = 4.0


class SessionState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPING = "stopping"


class PlaybackState(str, Enum):
    IDLE = "idle"
    SPEAKING = "speaking"


@dataclass(frozen=True)
class RecognitionResult:
    """One segment reported by a recognizer in a single result event."""

    transcript: str
    is_final: bool
    confidence: Optional[float] = None


@dataclass(frozen=True)
class TranscriptEvent:
    text: str
    is_final: bool
    # None means the recognizer did not report one; never read it as zero.
    confidence: Optional[float] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if self.confidence is not None:
            object.__setattr__(self, "confidence", min(1.0, max(0.0, float(self.confidence))))


@dataclass(frozen=True)
class SpeechRequest:
    text: str
    voice: str = "nova"
    speed: float = 1.0
    model: str = "tts-1"
    response_format: str = "mp3"

    def __post_init__(self) -> None:
        if self.voice not in TTS_VOICES:
            raise ValueError(f"Unknown TTS voice: {self.voice}")
        if self.model not in TTS_MODELS:
            raise ValueError(f"Unknown TTS model: {self.model}")
        if self.response_format not in AUDIO_FORMATS:
            raise ValueError(f"Unsupported audio format: {self.response_format}")
        object.__setattr__(self, "speed", min(MAX_SPEED, max(MIN_SPEED, float(self.speed))))

    @property
    def mime_type(self) -> str:
        return AUDIO_MIME_TYPES[self.response_format]

    def to_payload(self) -> dict[str, object]:
        return {
            "model": self.model,
            "input": self.text,
            "voice": self.voice,
            "response_format": self.response_format,
            "speed": self.speed,
        }


@dataclass(frozen=True)
class VoiceStatus:
    is_listening: bool
    is_playing: bool
    current_transcript: str
    recognition_available: bool
    session_state: SessionState
    playback_state: PlaybackState
    pending_units: int
    current_index: Optional[int]
