"""Application layer orchestration."""

from .bootstrap import (
    UnavailableRecognitionProvider,
    VoiceServices,
    build_voice_coordinator,
    build_voice_services,
    select_recognition_provider,
)
from .coordinator import CancellationToken, VoiceCallbacks, VoiceCoordinator, VoiceOptions
from .ports import (
    AudioBackend,
    RecognitionListener,
    RecognitionProvider,
    RecognizerHandle,
    SpeechTransport,
)
from .recognition import RecognitionOptions, RecognitionSession
from .synthesis import SynthesisClient

__all__ = [
    "AudioBackend",
    "CancellationToken",
    "RecognitionListener",
    "RecognitionOptions",
    "RecognitionProvider",
    "RecognitionSession",
    "RecognizerHandle",
    "SpeechTransport",
    "SynthesisClient",
    "UnavailableRecognitionProvider",
    "VoiceCallbacks",
    "VoiceCoordinator",
    "VoiceOptions",
    "VoiceServices",
    "build_voice_coordinator",
    "build_voice_services",
    "select_recognition_provider",
]
