"""Configuration loading from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .domain.events import AUDIO_FORMATS, MAX_SPEED, MIN_SPEED, TTS_MODELS, TTS_VOICES
from .utils import (
    parse_choice_env,
    parse_flag_env,
    parse_float_env,
    parse_int_env,
    resolve_path,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class VoiceConfig:
    log_level: str
    file_log_level: str
    log_dir: str
    log_file: str
    speech_api_base_url: str
    speech_api_key: str
    speech_api_timeout_seconds: float
    tts_model: str
    tts_voice: str
    tts_speed: float
    tts_format: str
    sentence_pause_seconds: float
    min_sentence_chars: int
    normalize_numbers: bool
    tts_char_limit: Optional[int]
    stt_language: str
    stt_continuous: bool
    stt_interim_results: bool
    assemblyai_api_key: str
    stt_sample_rate: int
    interim_barge_in_confidence: Optional[float] = None
    playback_poll_interval: float = 0.05
    playback_start_timeout: float = 5.0


def _log_level(name: str, default: str) -> str:
    value = os.getenv(name, default).strip().upper()
    return value if value in LOG_LEVELS else default


def load_config() -> VoiceConfig:
    base_dir = str(Path(__file__).resolve().parents[1])
    log_dir = resolve_path(os.getenv("LOG_DIR", "logs"), base_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(
        log_dir, f"voice_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.log"
    )
    speech_api_base_url = (
        os.getenv("SPEECH_API_BASE_URL", "http://127.0.0.1:3001").strip().rstrip("/")
        or "http://127.0.0.1:3001"
    )
    tts_char_limit = parse_int_env("TTS_CHAR_LIMIT", 4096, min_value=0, max_value=4096)
    barge_in_confidence = parse_float_env(
        "INTERIM_BARGE_IN_CONFIDENCE",
        0.0,
        min_value=0.0,
        max_value=1.0,
    )
    return VoiceConfig(
        log_level=_log_level("LOG_LEVEL", "INFO"),
        file_log_level=_log_level("FILE_LOG_LEVEL", "DEBUG"),
        log_dir=log_dir,
        log_file=log_file,
        speech_api_base_url=speech_api_base_url,
        speech_api_key=os.getenv("SPEECH_API_KEY", "").strip(),
        speech_api_timeout_seconds=parse_float_env(
            "SPEECH_API_TIMEOUT_SECONDS", 30.0, min_value=0.0, max_value=600.0
        ),
        tts_model=parse_choice_env("TTS_MODEL", "tts-1", TTS_MODELS),
        tts_voice=parse_choice_env("TTS_VOICE", "nova", TTS_VOICES),
        tts_speed=parse_float_env("TTS_SPEED", 1.0, min_value=MIN_SPEED, max_value=MAX_SPEED),
        tts_format=parse_choice_env("TTS_FORMAT", "mp3", AUDIO_FORMATS),
        sentence_pause_seconds=parse_int_env(
            "SENTENCE_PAUSE_MS", 300, min_value=0, max_value=5000
        )
        / 1000.0,
        min_sentence_chars=parse_int_env("MIN_SENTENCE_CHARS", 3, min_value=1, max_value=50),
        normalize_numbers=parse_flag_env("NORMALIZE_NUMBERS", True),
        tts_char_limit=tts_char_limit or None,
        stt_language=os.getenv("STT_LANGUAGE", "ru-RU").strip() or "ru-RU",
        stt_continuous=parse_flag_env("STT_CONTINUOUS", False),
        stt_interim_results=parse_flag_env("STT_INTERIM_RESULTS", True),
        assemblyai_api_key=os.getenv("ASSEMBLYAI_API_KEY", "").strip(),
        stt_sample_rate=parse_int_env("STT_SAMPLE_RATE", 16000, min_value=8000, max_value=48000),
        interim_barge_in_confidence=barge_in_confidence or None,
        playback_poll_interval=parse_int_env(
            "PLAYBACK_POLL_MS", 50, min_value=10, max_value=1000
        )
        / 1000.0,
        playback_start_timeout=parse_float_env(
            "PLAYBACK_START_TIMEOUT_SECONDS", 5.0, min_value=0.5, max_value=60.0
        ),
    )
