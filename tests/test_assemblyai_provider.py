import asyncio
from types import SimpleNamespace

import pytest

from lesson_voice.application.recognition import RecognitionOptions
from lesson_voice.domain.errors import RecognitionError, RecognitionErrorCategory
from lesson_voice.integrations import assemblyai_stt


class _Listener:
    def __init__(self):
        self.events = []
        self.ended = asyncio.Event()

    def on_start(self):
        self.events.append(("start",))

    def on_result(self, results):
        self.events.append(("result", [(r.transcript, r.is_final, r.confidence) for r in results]))

    def on_error(self, code, message=None):
        self.events.append(("error", code, message))

    def on_end(self):
        self.events.append(("end",))
        self.ended.set()


class _Microphone:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class _StreamingClient:
    """Replays a scripted session when ``stream`` is called."""

    def __init__(self, turns):
        self.turns = turns
        self.handlers = {}
        self.disconnected = False

    def on(self, event, handler):
        self.handlers[event] = handler

    def connect(self, params):
        self.params = params
        self.handlers["begin"](self, SimpleNamespace(id="session-1"))

    def stream(self, microphone):
        for turn in self.turns:
            if microphone.closed:
                break
            self.handlers["turn"](self, turn)

    def disconnect(self, terminate=False):
        self.disconnected = terminate
        self.handlers["termination"](self, SimpleNamespace(audio_duration_seconds=1.5))


def _turn(text, end_of_turn=False, formatted=False, confidences=()):
    words = [SimpleNamespace(confidence=value) for value in confidences]
    return SimpleNamespace(
        transcript=text,
        end_of_turn=end_of_turn,
        turn_is_formatted=formatted,
        words=words,
    )


def _patch_sdk(monkeypatch):
    monkeypatch.setattr(
        assemblyai_stt,
        "StreamingEvents",
        SimpleNamespace(Begin="begin", Turn="turn", Termination="termination", Error="error"),
    )
    monkeypatch.setattr(assemblyai_stt, "StreamingParameters", lambda **kwargs: kwargs)


def _run_handle(options, client, microphone_factory):
    async def _scenario():
        listener = _Listener()
        handle = assemblyai_stt.AssemblyAIRecognizerHandle(
            options,
            listener,
            api_key="key",
            sample_rate=16000,
            loop=asyncio.get_running_loop(),
            logger=assemblyai_stt.logging.getLogger("lesson_voice.tests"),
            client_factory=lambda: client,
            microphone_factory=microphone_factory,
        )
        handle.start()
        await asyncio.wait_for(listener.ended.wait(), timeout=5)
        await asyncio.sleep(0.01)
        return listener.events

    return asyncio.run(_scenario())


def test_provider_availability_needs_key_and_sdk(monkeypatch):
    monkeypatch.setattr(assemblyai_stt, "_aai", object())
    monkeypatch.setattr(assemblyai_stt, "StreamingClient", object())

    assert assemblyai_stt.AssemblyAIRecognitionProvider("key").available() is True
    assert assemblyai_stt.AssemblyAIRecognitionProvider("  ").available() is False

    monkeypatch.setattr(assemblyai_stt, "_aai", None)
    assert assemblyai_stt.AssemblyAIRecognitionProvider("key").available() is False


def test_turns_map_to_interim_and_final_results(monkeypatch):
    _patch_sdk(monkeypatch)
    client = _StreamingClient(
        [
            _turn("привет", confidences=(0.25, 0.75)),
            _turn("привет мир", end_of_turn=True),
            _turn("Привет, мир.", end_of_turn=True, formatted=True, confidences=(1.0, 0.5)),
            _turn("лишнее"),
        ]
    )
    microphone = _Microphone()

    events = _run_handle(RecognitionOptions(), client, lambda: microphone)

    assert events[0] == ("start",)
    assert events[1] == ("result", [("привет", False, 0.5)])
    assert events[2] == ("result", [("привет мир", False, None)])
    assert events[3] == ("result", [("Привет, мир.", True, 0.75)])
    # Single-utterance mode stops after the first final turn.
    assert events[4:] == [("end",)]
    assert microphone.closed
    assert client.disconnected is True
    assert client.params == {"sample_rate": 16000, "format_turns": True}


def test_interim_turns_are_dropped_when_disabled(monkeypatch):
    _patch_sdk(monkeypatch)
    client = _StreamingClient(
        [
            _turn("привет"),
            _turn("Привет.", end_of_turn=True, formatted=True),
        ]
    )

    events = _run_handle(
        RecognitionOptions(interim_results=False, continuous=True),
        client,
        _Microphone,
    )

    assert events == [("start",), ("result", [("Привет.", True, None)]), ("end",)]


def test_microphone_failure_is_an_audio_capture_error(monkeypatch):
    _patch_sdk(monkeypatch)

    def _no_microphone():
        raise OSError("no input device")

    events = _run_handle(RecognitionOptions(), _StreamingClient([]), _no_microphone)

    assert ("error", "audio-capture", "no input device") in events
    assert events[-1] == ("end",)


def test_connect_failure_is_a_network_error(monkeypatch):
    _patch_sdk(monkeypatch)

    class _Unreachable(_StreamingClient):
        def connect(self, params):
            raise ConnectionError("handshake failed")

    events = _run_handle(RecognitionOptions(), _Unreachable([]), _Microphone)

    assert events == [("error", "network", "handshake failed"), ("end",)]


def test_streaming_error_closes_the_microphone(monkeypatch):
    _patch_sdk(monkeypatch)
    microphone = _Microphone()

    class _Flaky(_StreamingClient):
        def stream(self, microphone):
            self.handlers["error"](self, RuntimeError("socket closed"))
            super().stream(microphone)

    client = _Flaky([_turn("после ошибки", end_of_turn=True, formatted=True)])
    events = _run_handle(RecognitionOptions(), client, lambda: microphone)

    assert microphone.closed
    assert ("error", "network", "socket closed") in events
    assert all(event[0] != "result" for event in events)
    assert events[-1] == ("end",)


def test_create_session_outside_event_loop_is_a_recognition_error(monkeypatch):
    monkeypatch.setattr(assemblyai_stt, "_aai", SimpleNamespace())
    monkeypatch.setattr(assemblyai_stt, "StreamingClient", object)
    provider = assemblyai_stt.AssemblyAIRecognitionProvider("key")

    with pytest.raises(RecognitionError) as excinfo:
        provider.create_session(RecognitionOptions(), _Listener())

    assert excinfo.value.category is RecognitionErrorCategory.UNKNOWN
    assert "event loop" in excinfo.value.detail
