"""Sentence splitting for sequential speech playback."""

from __future__ import annotations

import logging
import re

logger = logging.getLogger("lesson_voice")

SENTENCE_BREAK_RE = re.compile(r'([.!?]+)(["\'»)\]]?)(\s+|$)')
LINE_BREAK_RE = re.compile(r"\s*\n\s*")
COMMA_BREAK_RE = re.compile(r"(?<=,)\s*")

ABBREV_WORDS = {"см", "стр", "рис", "им", "ул", "проф", "акад", "напр", "г", "гг"}
ABBREV_DOTTED = {"т.е", "т.к"}

MIN_SPEAKABLE_CHARS = 3


def _is_abbrev(text: str, punct_index: int) -> bool:
    if punct_index >= 3:
        dotted = text[punct_index - 3 : punct_index].lower()
        if dotted in ABBREV_DOTTED:
            if punct_index == 3 or not text[punct_index - 4].isalnum():
                return True
    i = punct_index - 1
    while i >= 0 and text[i].isalpha():
        i -= 1
    word = text[i + 1 : punct_index].lower()
    if not word:
        return False
    return word in ABBREV_WORDS and (i < 0 or not text[i].isalnum())


def _split_on_terminal_punctuation(text: str) -> list[str]:
    units: list[str] = []
    start = 0
    for match in SENTENCE_BREAK_RE.finditer(text):
        if match.group(1) == "." and _is_abbrev(text, match.start(1)):
            continue
        unit = text[start : match.end(2)].strip()
        if unit:
            units.append(unit)
        start = match.end()
    tail = text[start:].strip()
    if tail:
        units.append(tail)
    return units


def _split_with(pattern: re.Pattern[str], text: str) -> list[str]:
    return [part.strip() for part in pattern.split(text) if part.strip()]


def split_sentences(text: str) -> list[str]:
    """Split text into ordered speakable units.

    Terminal punctuation is tried first; if that leaves a single unit the text
    is split on line breaks, and failing that on commas, so long unpunctuated
    text never goes out as one synthesis request.
    """
    if not text or not text.strip():
        return []
    units = _split_on_terminal_punctuation(text)
    strategy = "punctuation"
    if len(units) <= 1:
        by_lines = _split_with(LINE_BREAK_RE, text)
        if len(by_lines) > 1:
            units, strategy = by_lines, "lines"
    if len(units) <= 1:
        by_commas = _split_with(COMMA_BREAK_RE, text)
        if len(by_commas) > 1:
            units, strategy = by_commas, "commas"
    if not units:
        units = [text.strip()]
    logger.debug("Sentence split: strategy=%s count=%s", strategy, len(units))
    return units


def is_speakable(unit: str, min_chars: int = MIN_SPEAKABLE_CHARS) -> bool:
    """Units shorter than ``min_chars`` are treated as noise during playback."""
    return len(unit.strip()) >= min_chars


def progressive_chunks(text: str) -> list[str]:
    """Cumulative sentence prefixes, for revealing a reply as it is spoken."""
    chunks: list[str] = []
    revealed: list[str] = []
    for unit in split_sentences(text):
        revealed.append(unit)
        chunks.append(" ".join(revealed))
    return chunks
