"""Assembly of the voice engine services from configuration."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..config import VoiceConfig
from ..domain.errors import RECOGNITION_UNAVAILABLE_MESSAGE, CapabilityUnavailableError
from ..domain.normalization import TextNormalizer
from ..integrations.assemblyai_stt import AssemblyAIRecognitionProvider
from ..integrations.audio_backend import VlcAudioBackend
from ..integrations.speech_api import SpeechApiClient
from .coordinator import VoiceCallbacks, VoiceCoordinator, VoiceOptions
from .ports import AudioBackend, RecognitionProvider, SpeechTransport
from .synthesis import SynthesisClient


class UnavailableRecognitionProvider:
    """Stand-in used when no recognizer can run here; never creates a session."""

    def available(self) -> bool:
        return False

    def create_session(self, options, listener):
        raise CapabilityUnavailableError(RECOGNITION_UNAVAILABLE_MESSAGE)


@dataclass(frozen=True)
class VoiceServices:
    text_normalizer: TextNormalizer
    transport: SpeechTransport
    synthesis: SynthesisClient
    recognition_provider: RecognitionProvider
    coordinator: VoiceCoordinator


def select_recognition_provider(config: VoiceConfig, logger) -> RecognitionProvider:
    """Pick the recognizer once at startup."""
    provider = AssemblyAIRecognitionProvider(
        config.assemblyai_api_key,
        config.stt_sample_rate,
        logger=logger,
    )
    if provider.available():
        logger.info("Speech recognition: AssemblyAI streaming (%s Hz)", config.stt_sample_rate)
        return provider
    if not config.assemblyai_api_key:
        logger.warning("ASSEMBLYAI_API_KEY is empty; speech recognition is disabled.")
    else:
        logger.warning("assemblyai is not installed; speech recognition is disabled.")
    return UnavailableRecognitionProvider()


def build_voice_options(config: VoiceConfig) -> VoiceOptions:
    return VoiceOptions(
        language=config.stt_language,
        tts_voice=config.tts_voice,
        tts_speed=config.tts_speed,
        tts_model=config.tts_model,
        continuous=config.stt_continuous,
        interim_results=config.stt_interim_results,
        sentence_pause=config.sentence_pause_seconds,
        min_sentence_chars=config.min_sentence_chars,
        interim_barge_in_confidence=config.interim_barge_in_confidence,
    )


def build_voice_services(
    config: VoiceConfig,
    logger,
    callbacks: VoiceCallbacks | None = None,
    *,
    recognition_provider: RecognitionProvider | None = None,
    transport: SpeechTransport | None = None,
    audio_backend_factory: Callable[[], AudioBackend] | None = None,
) -> VoiceServices:
    """Construct all runtime services and return a typed service bundle."""
    text_normalizer = TextNormalizer(config.tts_char_limit, config.normalize_numbers)
    if transport is None:
        transport = SpeechApiClient(
            config.speech_api_base_url,
            api_key=config.speech_api_key,
            timeout_seconds=config.speech_api_timeout_seconds,
            logger=logger,
        )
    logger.info("Speech API endpoint: %s", getattr(transport, "endpoint", "custom"))
    synthesis = SynthesisClient(
        transport,
        audio_backend_factory or VlcAudioBackend,
        text_normalizer,
        logger,
        response_format=config.tts_format,
        poll_interval=config.playback_poll_interval,
        start_timeout=config.playback_start_timeout,
    )
    if recognition_provider is None:
        recognition_provider = select_recognition_provider(config, logger)
    coordinator = VoiceCoordinator(
        synthesis,
        recognition_provider,
        build_voice_options(config),
        callbacks,
        logger,
    )
    return VoiceServices(
        text_normalizer=text_normalizer,
        transport=transport,
        synthesis=synthesis,
        recognition_provider=recognition_provider,
        coordinator=coordinator,
    )


def build_voice_coordinator(
    config: VoiceConfig,
    logger,
    callbacks: VoiceCallbacks | None = None,
    **overrides,
) -> VoiceCoordinator:
    return build_voice_services(config, logger, callbacks, **overrides).coordinator
