"""Russian numeral and date normalization for speech synthesis."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

logger = logging.getLogger("lesson_voice")

UNITS = ["", "один", "два", "три", "четыре", "пять", "шесть", "семь", "восемь", "девять"]
UNITS_FEMININE = ["", "одна", "две", "три", "четыре", "пять", "шесть", "семь", "восемь", "девять"]
TEENS = [
    "десять",
    "одиннадцать",
    "двенадцать",
    "тринадцать",
    "четырнадцать",
    "пятнадцать",
    "шестнадцать",
    "семнадцать",
    "восемнадцать",
    "девятнадцать",
]
TENS = [
    "",
    "",
    "двадцать",
    "тридцать",
    "сорок",
    "пятьдесят",
    "шестьдесят",
    "семьдесят",
    "восемьдесят",
    "девяносто",
]
HUNDREDS = [
    "",
    "сто",
    "двести",
    "триста",
    "четыреста",
    "пятьсот",
    "шестьсот",
    "семьсот",
    "восемьсот",
    "девятьсот",
]

THOUSAND_FORMS = ("тысяча", "тысячи", "тысяч")
MILLION_FORMS = ("миллион", "миллиона", "миллионов")

ZERO_WORD = "ноль"
MINUS_WORD = "минус"

MAX_SPOKEN_NUMBER = 999_999_999
MAX_INLINE_NUMBER = 999_999

# Day-of-month in the genitive case, as used in "12 апреля".
DAY_ORDINALS = [
    "",
    "первого",
    "второго",
    "третьего",
    "четвертого",
    "пятого",
    "шестого",
    "седьмого",
    "восьмого",
    "девятого",
    "десятого",
    "одиннадцатого",
    "двенадцатого",
    "тринадцатого",
    "четырнадцатого",
    "пятнадцатого",
    "шестнадцатого",
    "семнадцатого",
    "восемнадцатого",
    "девятнадцатого",
    "двадцатого",
    "двадцать первого",
    "двадцать второго",
    "двадцать третьего",
    "двадцать четвертого",
    "двадцать пятого",
    "двадцать шестого",
    "двадцать седьмого",
    "двадцать восьмого",
    "двадцать девятого",
    "тридцатого",
    "тридцать первого",
]

NOMINATIVE = "nominative"
GENITIVE = "genitive"
PREPOSITIONAL = "prepositional"
ORDINAL_CASES = (NOMINATIVE, GENITIVE, PREPOSITIONAL)

ORDINAL_ENDINGS = {
    "hard": {NOMINATIVE: "ый", GENITIVE: "ого", PREPOSITIONAL: "ом"},
    "stressed": {NOMINATIVE: "ой", GENITIVE: "ого", PREPOSITIONAL: "ом"},
    "soft": {NOMINATIVE: "ий", GENITIVE: "ьего", PREPOSITIONAL: "ьем"},
}

# last digit -> (ordinal stem, ending pattern)
UNIT_ORDINALS = {
    1: ("перв", "hard"),
    2: ("втор", "stressed"),
    3: ("трет", "soft"),
    4: ("четверт", "hard"),
    5: ("пят", "hard"),
    6: ("шест", "stressed"),
    7: ("седьм", "stressed"),
    8: ("восьм", "stressed"),
    9: ("девят", "hard"),
}
# 10..19 share one ending; the stem is the cardinal without its final soft sign.
TEEN_ORDINALS = {10 + index: (word[:-1], "hard") for index, word in enumerate(TEENS)}
ROUND_TEN_ORDINALS = {
    2: ("двадцат", "hard"),
    3: ("тридцат", "hard"),
    4: ("сороков", "stressed"),
    5: ("пятидесят", "hard"),
    6: ("шестидесят", "hard"),
    7: ("семидесят", "hard"),
    8: ("восьмидесят", "hard"),
    9: ("девяност", "hard"),
}
ROUND_HUNDRED_ORDINALS = {
    1: "сот",
    2: "двухсот",
    3: "трехсот",
    4: "четырехсот",
    5: "пятисот",
    6: "шестисот",
    7: "семисот",
    8: "восьмисот",
    9: "девятисот",
}
ROUND_THOUSAND_PREFIXES = {
    1: "",
    2: "двух",
    3: "трех",
    4: "четырех",
    5: "пяти",
    6: "шести",
    7: "семи",
    8: "восьми",
    9: "девяти",
}

MONTHS_GENITIVE = (
    "января",
    "февраля",
    "марта",
    "апреля",
    "мая",
    "июня",
    "июля",
    "августа",
    "сентября",
    "октября",
    "ноября",
    "декабря",
)

_YEAR_SUFFIX = r"(год(?:а|у)?|г\.?)(?![а-яё])"
DATE_RE = re.compile(
    r"\b(\d{1,2})\s+(" + "|".join(MONTHS_GENITIVE) + r")\s+(\d{4})\s+" + _YEAR_SUFFIX,
    re.IGNORECASE,
)
YEAR_RE = re.compile(r"\b(\d{4})\s+" + _YEAR_SUFFIX, re.IGNORECASE)
INT_RE = re.compile(r"\b\d+\b")
DIGIT_RE = re.compile(r"\d")
ORDINAL_MARKER_RE = re.compile(r"(?:ого|его|ом|ем|ый|ой|ий)\b", re.IGNORECASE)


@dataclass(frozen=True)
class NumeralToken:
    start: int
    end: int
    raw: str
    kind: str
    groups: tuple[str, ...]


def plural_form(count: int, forms: tuple[str, str, str]) -> str:
    """Pick the singular, paucal or plural noun form for ``count``."""
    last_two = count % 100
    last = count % 10
    if 11 <= last_two <= 14:
        return forms[2]
    if last == 1:
        return forms[0]
    if 2 <= last <= 4:
        return forms[1]
    return forms[2]


def _triplet_words(value: int, *, feminine: bool = False) -> list[str]:
    words: list[str] = []
    hundreds, remainder = divmod(value, 100)
    if hundreds:
        words.append(HUNDREDS[hundreds])
    if 10 <= remainder <= 19:
        words.append(TEENS[remainder - 10])
        return words
    tens, ones = divmod(remainder, 10)
    if tens:
        words.append(TENS[tens])
    if ones:
        words.append(UNITS_FEMININE[ones] if feminine else UNITS[ones])
    return words


@lru_cache(maxsize=4096)
def _cardinal_words(value: int) -> tuple[str, ...]:
    millions, rest = divmod(value, 1_000_000)
    thousands, units = divmod(rest, 1000)
    words: list[str] = []
    if millions:
        words.extend(_triplet_words(millions))
        words.append(plural_form(millions, MILLION_FORMS))
    if thousands:
        if thousands != 1:
            words.extend(_triplet_words(thousands, feminine=True))
        words.append(plural_form(thousands, THOUSAND_FORMS))
    if units:
        words.extend(_triplet_words(units))
    return tuple(words)


def number_to_words(value: int) -> str:
    """Spell an integer as Russian cardinal words; out-of-range values stay digits."""
    if value == 0:
        return ZERO_WORD
    if abs(value) > MAX_SPOKEN_NUMBER:
        return str(value)
    if value < 0:
        return f"{MINUS_WORD} {number_to_words(-value)}"
    return " ".join(_cardinal_words(value))


def get_ordinal_form(day: int) -> str:
    """Genitive ordinal for a day of month (1..31)."""
    if 1 <= day <= 31:
        return DAY_ORDINALS[day]
    return number_to_words(day)


def _inflect(stem: str, pattern: str, case: str) -> str:
    return stem + ORDINAL_ENDINGS[pattern][case]


def _final_ordinal(year: int, case: str) -> tuple[int, str]:
    """Return how many trailing cardinal words to replace and the ordinal word."""
    last_two = year % 100
    if last_two:
        if last_two in TEEN_ORDINALS:
            stem, pattern = TEEN_ORDINALS[last_two]
        else:
            tens, ones = divmod(last_two, 10)
            stem, pattern = UNIT_ORDINALS[ones] if ones else ROUND_TEN_ORDINALS[tens]
        return 1, _inflect(stem, pattern, case)
    hundreds = year // 100 % 10
    if hundreds:
        return 1, _inflect(ROUND_HUNDRED_ORDINALS[hundreds], "hard", case)
    thousands = year // 1000 % 1000
    if thousands:
        if thousands in ROUND_THOUSAND_PREFIXES:
            multiplier_words = 0 if thousands == 1 else len(_triplet_words(thousands, feminine=True))
            return multiplier_words + 1, _inflect(
                ROUND_THOUSAND_PREFIXES[thousands] + "тысячн", "hard", case
            )
        return 1, _inflect("тысячн", "hard", case)
    return 1, _inflect("миллионн", "hard", case)


def get_year_ordinal_form(year: int, case: str = PREPOSITIONAL) -> str:
    """Spell a year as an ordinal ("в ... первом году"), inflecting only the last word."""
    if case not in ORDINAL_CASES:
        case = PREPOSITIONAL
    if year < 0 or year > MAX_SPOKEN_NUMBER:
        return str(year)
    if year == 0:
        return _inflect("нулев", "stressed", case)
    words = list(_cardinal_words(year))
    replaced, ordinal = _final_ordinal(year, case)
    return " ".join(words[: len(words) - replaced] + [ordinal])


def _case_for_suffix(suffix: str) -> str:
    lowered = suffix.lower()
    if lowered == "год":
        return NOMINATIVE
    if lowered == "года":
        return GENITIVE
    return PREPOSITIONAL


def _already_inflected(raw: str, suffix: str) -> bool:
    body = raw[: len(raw) - len(suffix)] if suffix and raw.endswith(suffix) else raw
    return bool(ORDINAL_MARKER_RE.search(body))


def _rewrite(
    text: str,
    pattern: re.Pattern[str],
    kind: str,
    render: Callable[[NumeralToken], str | None],
) -> tuple[str, int]:
    tokens = [
        NumeralToken(match.start(), match.end(), match.group(0), kind, match.groups())
        for match in pattern.finditer(text)
    ]
    if not tokens:
        return text, 0
    parts: list[str] = []
    last = 0
    replaced = 0
    for token in tokens:
        rendered = render(token)
        parts.append(text[last : token.start])
        if rendered is None:
            parts.append(token.raw)
        else:
            parts.append(rendered)
            replaced += 1
        last = token.end
    parts.append(text[last:])
    return "".join(parts), replaced


def _render_date(token: NumeralToken) -> str | None:
    day_raw, month, year_raw, suffix = token.groups
    if _already_inflected(token.raw, suffix):
        return None
    day = int(day_raw)
    if not 1 <= day <= 31:
        return None
    year_words = get_year_ordinal_form(int(year_raw), GENITIVE)
    return f"{get_ordinal_form(day)} {month} {year_words} {suffix}"


def _render_year(token: NumeralToken) -> str | None:
    year_raw, suffix = token.groups
    if _already_inflected(token.raw, suffix):
        return None
    return f"{get_year_ordinal_form(int(year_raw), _case_for_suffix(suffix))} {suffix}"


def _render_integer(token: NumeralToken) -> str | None:
    if len(token.raw.lstrip("0")) > len(str(MAX_INLINE_NUMBER)):
        return None
    value = int(token.raw)
    if value > MAX_INLINE_NUMBER:
        return None
    return number_to_words(value)


def replace_numbers_in_text(text: str) -> str:
    """Rewrite dates, years and integers in ``text`` as spoken Russian words.

    Full dates are handled first, then years followed by "год"/"г.", then any
    remaining integer up to 999 999. Larger integers are left as digits.
    Never raises: on unexpected input the text is returned unchanged.
    """
    if not text or not DIGIT_RE.search(text):
        return text
    try:
        updated, dates = _rewrite(text, DATE_RE, "full_date", _render_date)
        updated, years = _rewrite(updated, YEAR_RE, "bare_year", _render_year)
        updated, integers = _rewrite(updated, INT_RE, "integer", _render_integer)
    except (ValueError, KeyError, IndexError):
        logger.exception("Numeral normalization failed; passing text through")
        return text
    if dates or years or integers:
        logger.debug(
            "Normalized numerals: dates=%s years=%s integers=%s",
            dates,
            years,
            integers,
        )
    return updated
