"""libVLC audio output used to play synthesized speech."""

from __future__ import annotations

import os
import sys

from ..domain.errors import PlaybackError, PlaybackUnavailableError

try:
    import vlc as _vlc
except Exception:  # pragma: no cover - libVLC may be missing at import time
    _vlc = None

STATUS_IDLE = "idle"
STATUS_OPENING = "opening"
STATUS_PLAYING = "playing"
STATUS_PAUSED = "paused"
STATUS_STOPPED = "stopped"
STATUS_ENDED = "ended"
STATUS_ERROR = "error"

_STATE_NAMES = {
    "NothingSpecial": STATUS_IDLE,
    "Opening": STATUS_OPENING,
    "Buffering": STATUS_OPENING,
    "Playing": STATUS_PLAYING,
    "Paused": STATUS_PAUSED,
    "Stopped": STATUS_STOPPED,
    "Ended": STATUS_ENDED,
    "Error": STATUS_ERROR,
}


class VlcAudioBackend:
    """Single audio-only libVLC player; one instance owns one output stream."""

    def __init__(self, *, vlc_module=None, platform_name: str | None = None) -> None:
        self._vlc = vlc_module if vlc_module is not None else _vlc
        if self._vlc is None:
            raise PlaybackUnavailableError("python-vlc is not available")
        platform_value = platform_name if platform_name is not None else sys.platform
        args = ["--no-xlib", "--no-video"] if str(platform_value).startswith("linux") else ["--no-video"]
        self.instance = self._vlc.Instance(args)
        if self.instance is None:
            raise PlaybackUnavailableError("libVLC runtime could not be initialized")
        self.player = self.instance.media_player_new()
        self.media = None

    def _release_media(self) -> None:
        if self.media is None:
            return
        try:
            self.media.release()
        except Exception:
            pass
        self.media = None

    def load(self, path: str) -> None:
        if not os.path.isfile(path):
            raise FileNotFoundError(path)
        self._release_media()
        media = self.instance.media_new(os.path.abspath(path))
        self.player.set_media(media)
        self.media = media

    def play(self) -> None:
        rc = int(self.player.play())
        if rc == -1:
            raise PlaybackError("VLC failed to start playback.")

    def stop(self) -> None:
        self.player.stop()

    def status(self) -> str:
        state = self.player.get_state()
        name = str(state).rsplit(".", 1)[-1]
        return _STATE_NAMES.get(name, STATUS_IDLE)

    def unload(self) -> None:
        try:
            self.player.stop()
        except Exception:
            pass
        self._release_media()

    def release(self) -> None:
        self.unload()
        try:
            self.player.release()
        except Exception:
            pass
        try:
            self.instance.release()
        except Exception:
            pass
