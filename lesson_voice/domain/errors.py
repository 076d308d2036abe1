"""Error taxonomy for the voice engine and its user-facing messages."""
from __future__ import annotations

from enum import Enum


class VoiceError(RuntimeError):
    """Base class for every error the voice engine raises."""

    #: Errors marked fatal abort the whole utterance instead of one sentence.
    fatal = False


class CapabilityUnavailableError(VoiceError):
    """A platform capability (recognizer, audio output) is missing entirely."""

    fatal = True


class RecognitionErrorCategory(str, Enum):
    NO_SPEECH = "no-speech"
    AUDIO_CAPTURE = "audio-capture"
    NETWORK = "network"
    ABORTED = "aborted"
    SERVICE_NOT_ALLOWED = "service-not-allowed"
    NOT_ALLOWED = "not-allowed"
    UNKNOWN = "unknown"


RECOGNITION_ERROR_MESSAGES = {
    RecognitionErrorCategory.NO_SPEECH: "Не слышу речь. Пожалуйста, говорите громче.",
    RecognitionErrorCategory.AUDIO_CAPTURE: "Микрофон недоступен. Проверьте разрешения.",
    RecognitionErrorCategory.NETWORK: "Ошибка сети. Проверьте интернет соединение.",
    RecognitionErrorCategory.ABORTED: "Запись прервана.",
    RecognitionErrorCategory.SERVICE_NOT_ALLOWED: "Сервис речевого распознавания недоступен.",
    RecognitionErrorCategory.NOT_ALLOWED: "Доступ к микрофону запрещен. Разрешите его в настройках.",
}


class RecognitionError(VoiceError):
    """A live recognition attempt failed; the session is already back to idle."""

    def __init__(
        self,
        category: RecognitionErrorCategory,
        message: str | None = None,
        *,
        code: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.category = category
        self.code = code or category.value
        self.detail = detail
        if message is None:
            message = RECOGNITION_ERROR_MESSAGES.get(
                category, f"Ошибка речевого распознавания: {self.code}"
            )
        super().__init__(message)

    @classmethod
    def from_code(cls, code: str, detail: str | None = None) -> "RecognitionError":
        normalized = str(code or "").strip().lower()
        try:
            category = RecognitionErrorCategory(normalized)
        except ValueError:
            category = RecognitionErrorCategory.UNKNOWN
        return cls(category, code=normalized or category.value, detail=detail)


class SynthesisError(VoiceError):
    """Speech synthesis for one text unit failed."""


class SpeechApiError(SynthesisError):
    """The synthesis endpoint answered with a non-2xx status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class SpeechTransportError(SynthesisError):
    """The synthesis endpoint could not be reached."""


class UnsupportedAudioError(SynthesisError):
    """The returned audio cannot be played in this environment at all."""

    fatal = True


class PlaybackError(VoiceError):
    """The audio output failed to play a synthesized unit."""


class PlaybackBlockedError(PlaybackError):
    """Audio output refused to start; the user has to interact or allow sound."""

    fatal = True


class PlaybackUnavailableError(PlaybackError):
    """No audio output backend can be created."""

    fatal = True


SPEAK_FAILED_MESSAGE = "Ошибка при озвучивании текста"
TTS_UNSUPPORTED_MESSAGE = "TTS не поддерживается в этом окружении"
PLAYBACK_BLOCKED_MESSAGE = (
    "Воспроизведение звука заблокировано. Нажмите на страницу или разрешите звук и повторите."
)
RECOGNITION_UNAVAILABLE_MESSAGE = "Распознавание речи недоступно в этом окружении."


def describe_error(error: BaseException) -> str:
    """Human-readable message for the caller's ``on_error`` callback."""
    if isinstance(error, RecognitionError):
        return str(error)
    if isinstance(error, PlaybackBlockedError):
        return PLAYBACK_BLOCKED_MESSAGE
    if isinstance(error, (UnsupportedAudioError, PlaybackUnavailableError)):
        return TTS_UNSUPPORTED_MESSAGE
    if isinstance(error, CapabilityUnavailableError):
        return str(error) or RECOGNITION_UNAVAILABLE_MESSAGE
    return SPEAK_FAILED_MESSAGE
