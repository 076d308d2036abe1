"""Integrations for external services and libraries."""

from .assemblyai_stt import AssemblyAIRecognitionProvider, AssemblyAIRecognizerHandle
from .audio_backend import VlcAudioBackend
from .speech_api import SpeechApiClient

__all__ = [
    "AssemblyAIRecognitionProvider",
    "AssemblyAIRecognizerHandle",
    "SpeechApiClient",
    "VlcAudioBackend",
]
