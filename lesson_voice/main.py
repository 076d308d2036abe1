"""Command line entrypoint: normalize, split, speak or listen."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .application.bootstrap import build_voice_coordinator
from .application.coordinator import VoiceCallbacks
from .config import load_config
from .domain.normalization import TextNormalizer
from .domain.numerals import replace_numbers_in_text
from .domain.splitting import split_sentences
from .logging_config import setup_logging


def _read_text(parts: list[str]) -> str:
    if parts:
        return " ".join(parts)
    return sys.stdin.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lesson-voice", description=__doc__)
    commands = parser.add_subparsers(dest="command", required=True)

    normalize = commands.add_parser("normalize", help="Print text with numerals spelled out")
    normalize.add_argument("text", nargs="*", help="Text to process (stdin when omitted)")
    normalize.add_argument(
        "--speech",
        action="store_true",
        help="Apply the full pre-synthesis clean-up, not only numerals",
    )

    split = commands.add_parser("split", help="Print the units text is spoken in, one per line")
    split.add_argument("text", nargs="*", help="Text to process (stdin when omitted)")

    speak = commands.add_parser("speak", help="Synthesize and play text")
    speak.add_argument("text", nargs="*", help="Text to speak (stdin when omitted)")
    speak.add_argument("--voice", default=None, help="Override TTS_VOICE")
    speak.add_argument("--speed", type=float, default=None, help="Override TTS_SPEED")

    listen = commands.add_parser("listen", help="Print transcripts from the microphone")
    listen.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for the listening attempt to end",
    )
    return parser


async def _speak(coordinator, text: str, voice, speed) -> None:
    try:
        await coordinator.speak_text(text, voice=voice, speed=speed)
    finally:
        coordinator.dispose()


async def _listen(coordinator, finished: asyncio.Event, timeout: float) -> int:
    try:
        if not coordinator.init() or not coordinator.start_listening():
            return 1
        try:
            await asyncio.wait_for(finished.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            coordinator.abort_listening()
        return 0
    finally:
        coordinator.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "normalize":
        text = _read_text(args.text)
        if args.speech:
            print(TextNormalizer().preprocess(text, apply_char_limit=False))
        else:
            print(replace_numbers_in_text(text))
        return 0
    if args.command == "split":
        for unit in split_sentences(_read_text(args.text)):
            print(unit)
        return 0

    config = load_config()
    logger = setup_logging(config)
    logger.info("Log file: %s", config.log_file)
    errors: list[str] = []

    def _on_error(message: str) -> None:
        errors.append(message)
        print(message, file=sys.stderr)

    if args.command == "speak":
        text = _read_text(args.text)
        coordinator = build_voice_coordinator(config, logger, VoiceCallbacks(on_error=_on_error))
        try:
            asyncio.run(_speak(coordinator, text, args.voice, args.speed))
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return 130
        return 1 if errors else 0

    finished = asyncio.Event()

    def _on_transcript(text: str, is_final: bool) -> None:
        print(text if is_final else f"... {text}", flush=True)

    callbacks = VoiceCallbacks(
        on_error=_on_error,
        on_transcript=_on_transcript,
        on_listening_end=finished.set,
    )
    coordinator = build_voice_coordinator(config, logger, callbacks)
    try:
        status = asyncio.run(_listen(coordinator, finished, args.timeout))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    return 1 if errors else status


if __name__ == "__main__":
    raise SystemExit(main())
