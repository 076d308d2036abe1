"""In-memory stand-ins for the speech endpoint, audio output and recognizer."""

from __future__ import annotations

import threading

import pytest


class FakeTransport:
    """Returns a fixed payload; ``failures`` maps unit text to the error it raises."""

    def __init__(self, payload=b"ID3fake-mp3", failures=None):
        self.payload = payload
        self.failures = dict(failures or {})
        self.requests = []
        self.gate: threading.Event | None = None
        self.entered = threading.Event()

    def synthesize(self, speech):
        self.requests.append(speech)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        error = self.failures.get(speech.text)
        if error is not None:
            raise error
        return self.payload


class FakeAudioBackend:
    """Plays for ``play_polls`` status reads, then reports the media as ended."""

    def __init__(self, play_polls=1, start_status="playing", end_status="ended"):
        self.play_polls = play_polls
        self.start_status = start_status
        self.end_status = end_status
        self.loaded = []
        self.payloads = []
        self.events = []
        self.released = False
        self._state = "idle"
        self._polls = 0

    def load(self, path):
        with open(path, "rb") as handle:
            self.payloads.append(handle.read())
        self.loaded.append(path)
        self.events.append("load")

    def play(self):
        self.events.append("play")
        self._state = self.start_status
        self._polls = 0

    def stop(self):
        self.events.append("stop")
        if self._state not in ("idle", "ended"):
            self._state = "stopped"

    def unload(self):
        self.events.append("unload")

    def status(self):
        if self._state == "playing":
            self._polls += 1
            if self._polls > self.play_polls:
                self._state = self.end_status
        return self._state

    def release(self):
        self.released = True


class FakeRecognizerHandle:
    def __init__(self, options, listener):
        self.options = options
        self.listener = listener
        self.calls = []

    def start(self):
        self.calls.append("start")

    def stop(self):
        self.calls.append("stop")

    def abort(self):
        self.calls.append("abort")


class FakeRecognitionProvider:
    def __init__(self, available=True):
        self._available = available
        self.handles = []

    def available(self):
        return self._available

    def create_session(self, options, listener):
        handle = FakeRecognizerHandle(options, listener)
        self.handles.append(handle)
        return handle

    @property
    def last(self):
        return self.handles[-1]


class RecordingCallbacks:
    """Collects every coordinator callback as an (event, args) tuple."""

    def __init__(self):
        self.events = []

    def record(self, name):
        def _callback(*args):
            self.events.append((name, args))

        return _callback

    def names(self):
        return [name for name, _args in self.events]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def failing_transport():
    def _build(failures):
        return FakeTransport(failures=failures)

    return _build


@pytest.fixture
def audio_backend():
    return FakeAudioBackend()


@pytest.fixture
def make_audio_backend():
    return FakeAudioBackend


@pytest.fixture
def recognition_provider():
    return FakeRecognitionProvider()


@pytest.fixture
def make_recognition_provider():
    return FakeRecognitionProvider


@pytest.fixture
def recording_callbacks():
    return RecordingCallbacks()

