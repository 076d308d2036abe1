"""Domain logic: numeral normalization, sentence splitting and voice value types."""

from .errors import (
    CapabilityUnavailableError,
    PlaybackBlockedError,
    PlaybackError,
    PlaybackUnavailableError,
    RecognitionError,
    RecognitionErrorCategory,
    SpeechApiError,
    SpeechTransportError,
    SynthesisError,
    UnsupportedAudioError,
    VoiceError,
    describe_error,
)
from .events import (
    PlaybackState,
    RecognitionResult,
    SessionState,
    SpeechRequest,
    TranscriptEvent,
    VoiceStatus,
)
from .normalization import TextNormalizer, clean_text_for_speech
from .numerals import (
    get_ordinal_form,
    get_year_ordinal_form,
    number_to_words,
    replace_numbers_in_text,
)
from .splitting import is_speakable, progressive_chunks, split_sentences

__all__ = [
    "CapabilityUnavailableError",
    "PlaybackBlockedError",
    "PlaybackError",
    "PlaybackState",
    "PlaybackUnavailableError",
    "RecognitionError",
    "RecognitionErrorCategory",
    "RecognitionResult",
    "SessionState",
    "SpeechApiError",
    "SpeechRequest",
    "SpeechTransportError",
    "SynthesisError",
    "TextNormalizer",
    "TranscriptEvent",
    "UnsupportedAudioError",
    "VoiceError",
    "VoiceStatus",
    "clean_text_for_speech",
    "describe_error",
    "get_ordinal_form",
    "get_year_ordinal_form",
    "is_speakable",
    "number_to_words",
    "progressive_chunks",
    "replace_numbers_in_text",
    "split_sentences",
]
