"""Text clean-up applied to every unit before it is sent for synthesis."""
from __future__ import annotations

import logging
import re

from .numerals import replace_numbers_in_text

logger = logging.getLogger("lesson_voice")

STRESS_MARK_RE = re.compile(r"\+([аеёиоуыэюя])", re.IGNORECASE)
QUOTES_RE = re.compile(r"[«»\"“”„‘’]")
WHITESPACE_RE = re.compile(r"\s+")


def clean_text_for_speech(text: str) -> str:
    """Drop stress markers and typographic quotes, collapse whitespace."""
    if not text:
        return text
    cleaned = STRESS_MARK_RE.sub(r"\1", text)
    cleaned = QUOTES_RE.sub("", cleaned)
    return WHITESPACE_RE.sub(" ", cleaned).strip()


class TextNormalizer:
    """Applies numeral normalization, speech clean-up and an optional character limit."""

    def __init__(self, char_limit: int | None = None, normalize_numbers: bool = True) -> None:
        self.char_limit = char_limit
        self.normalize_numbers = normalize_numbers

    def preprocess(
        self,
        text: str,
        normalize_numbers_enabled: bool | None = None,
        apply_char_limit: bool = True,
    ) -> str:
        if normalize_numbers_enabled is None:
            normalize_numbers_enabled = self.normalize_numbers
        if normalize_numbers_enabled:
            text = replace_numbers_in_text(text)
        text = clean_text_for_speech(text)
        if apply_char_limit and self.char_limit is not None and len(text) > self.char_limit:
            logger.debug("Truncating speech text from %s to %s chars", len(text), self.char_limit)
            text = text[: self.char_limit].rstrip()
        return text
