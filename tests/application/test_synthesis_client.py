import asyncio
import os
import threading

import pytest

from lesson_voice.application.synthesis import SynthesisClient
from lesson_voice.domain.errors import (
    PlaybackBlockedError,
    PlaybackError,
    PlaybackUnavailableError,
    SpeechApiError,
    SynthesisError,
)
from lesson_voice.domain.normalization import TextNormalizer


def _client(transport, backend, **kwargs):
    kwargs.setdefault("poll_interval", 0.001)
    kwargs.setdefault("start_timeout", 0.5)
    return SynthesisClient(transport, lambda: backend, TextNormalizer(), **kwargs)


def test_speak_fetches_and_plays_until_end(transport, audio_backend):
    client = _client(transport, audio_backend)

    asyncio.run(client.speak("У нас 2 урока", voice="alloy", speed=1.5))

    request = transport.requests[0]
    assert request.text == "У нас два урока"
    assert (request.voice, request.speed, request.model) == ("alloy", 1.5, "tts-1")
    assert audio_backend.payloads == [b"ID3fake-mp3"]
    assert audio_backend.events[:2] == ["load", "play"]
    assert not client.is_playing()
    # The temp file is removed once playback finishes.
    assert not os.path.exists(audio_backend.loaded[0])


def test_speak_skips_text_that_normalizes_to_nothing(transport, audio_backend):
    client = _client(transport, audio_backend)

    asyncio.run(client.speak("«»"))

    assert transport.requests == []
    assert audio_backend.loaded == []


def test_speak_propagates_typed_synthesis_errors(failing_transport, audio_backend):
    transport = failing_transport({"Ошибка тут": SpeechApiError("HTTP 500", status=500)})
    client = _client(transport, audio_backend)

    with pytest.raises(SpeechApiError, match="HTTP 500"):
        asyncio.run(client.speak("Ошибка тут"))

    assert audio_backend.loaded == []


def test_speak_wraps_unexpected_transport_errors(failing_transport, audio_backend):
    transport = failing_transport({"Сбой": ValueError("bad payload")})
    client = _client(transport, audio_backend)

    with pytest.raises(SynthesisError, match="bad payload"):
        asyncio.run(client.speak("Сбой"))


def test_stop_during_fetch_discards_late_payload(transport, audio_backend):
    transport.gate = threading.Event()
    client = _client(transport, audio_backend)

    async def _scenario():
        task = asyncio.ensure_future(client.speak("Долгий запрос"))
        await asyncio.to_thread(transport.entered.wait, 5)
        client.stop()
        await task
        transport.gate.set()
        await asyncio.sleep(0.01)

    asyncio.run(_scenario())

    assert len(transport.requests) == 1
    assert audio_backend.loaded == []
    assert not client.is_playing()


def test_stop_during_playback_returns_promptly(transport, make_audio_backend):
    backend = make_audio_backend(play_polls=10**9)
    client = _client(transport, backend)

    async def _scenario():
        task = asyncio.ensure_future(client.speak("Очень длинное предложение"))
        while not client.is_playing():
            await asyncio.sleep(0.001)
        client.stop()
        client.stop()
        await asyncio.wait_for(task, timeout=1)

    asyncio.run(_scenario())

    assert "stop" in backend.events
    assert not client.is_playing()
    assert not os.path.exists(backend.loaded[0])


def test_playback_that_never_starts_is_reported_as_blocked(transport, make_audio_backend):
    backend = make_audio_backend(start_status="opening")
    client = _client(transport, backend, start_timeout=0.02)

    with pytest.raises(PlaybackBlockedError):
        asyncio.run(client.speak("Звук заблокирован"))

    assert not client.is_playing()


def test_playback_error_status_raises_playback_error(transport, make_audio_backend):
    backend = make_audio_backend(start_status="error")
    client = _client(transport, backend)

    with pytest.raises(PlaybackError) as excinfo:
        asyncio.run(client.speak("Битый файл"))

    assert not excinfo.value.fatal


def test_missing_audio_backend_is_fatal(transport):
    def _factory():
        raise PlaybackUnavailableError("python-vlc is not available")

    client = SynthesisClient(transport, _factory, TextNormalizer(), poll_interval=0.001)

    with pytest.raises(PlaybackUnavailableError) as excinfo:
        asyncio.run(client.speak("Нет вывода"))

    assert excinfo.value.fatal


def test_close_releases_backend(transport, audio_backend):
    client = _client(transport, audio_backend)
    asyncio.run(client.speak("Первая фраза"))

    client.close()
    client.close()

    assert audio_backend.released
