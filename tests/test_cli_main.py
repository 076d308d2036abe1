import io
import logging

import pytest

from lesson_voice import main as main_mod


class _Coordinator:
    def __init__(self, callbacks, fail_with=None, available=True):
        self.callbacks = callbacks
        self.fail_with = fail_with
        self.available = available
        self.spoken = []
        self.disposed = False
        self.aborted = False

    async def speak_text(self, text, *, voice=None, speed=None):
        self.spoken.append((text, voice, speed))
        if self.fail_with:
            self.callbacks.on_error(self.fail_with)

    def init(self):
        return self.available

    def start_listening(self):
        self.callbacks.on_transcript("при", False)
        self.callbacks.on_transcript("привет", True)
        self.callbacks.on_listening_end()
        return True

    def abort_listening(self):
        self.aborted = True

    def dispose(self):
        self.disposed = True


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(main_mod, "setup_logging", lambda _config: logging.getLogger("lesson_voice.tests"))
    built = []

    def _install(**kwargs):
        def _build(config, logger, callbacks):
            _ = (config, logger)
            coordinator = _Coordinator(callbacks, **kwargs)
            built.append(coordinator)
            return coordinator

        monkeypatch.setattr(main_mod, "build_voice_coordinator", _build)
        return built

    return _install


def test_normalize_command_prints_words(capsys):
    assert main_mod.main(["normalize", "в", "2020", "году"]) == 0
    assert capsys.readouterr().out.strip() == "в две тысячи двадцатом году"


def test_normalize_speech_mode_strips_quotes(capsys):
    assert main_mod.main(["normalize", "--speech", "«з+амок»", "5"]) == 0
    assert capsys.readouterr().out.strip() == "замок пять"


def test_split_command_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr(main_mod.sys, "stdin", io.StringIO("Раз. Два!\n"))

    assert main_mod.main(["split"]) == 0
    assert capsys.readouterr().out.splitlines() == ["Раз.", "Два!"]


def test_speak_command_runs_coordinator(cli_env):
    built = cli_env()

    assert main_mod.main(["speak", "--voice", "echo", "Привет."]) == 0
    assert built[0].spoken == [("Привет.", "echo", None)]
    assert built[0].disposed


def test_speak_command_returns_error_status(cli_env, capsys):
    cli_env(fail_with="Ошибка при озвучивании текста")

    assert main_mod.main(["speak", "Привет."]) == 1
    assert "Ошибка при озвучивании текста" in capsys.readouterr().err


def test_listen_command_prints_transcripts(cli_env, capsys):
    built = cli_env()

    assert main_mod.main(["listen", "--timeout", "1"]) == 0
    assert capsys.readouterr().out.splitlines() == ["... при", "привет"]
    assert built[0].disposed


def test_listen_command_fails_without_recognition(cli_env):
    cli_env(available=False)

    assert main_mod.main(["listen"]) == 1
