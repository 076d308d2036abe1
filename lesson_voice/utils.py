"""Environment parsing helpers used by the configuration layer."""
from __future__ import annotations

import os
from typing import Callable, Optional, Sequence, TypeVar

Number = TypeVar("Number", int, float)

TRUTHY = ("1", "true", "yes", "on")
FALSY = ("0", "false", "no", "off")


def resolve_path(value: str, base_dir: str) -> str:
    """Resolve a path relative to base_dir when value is not absolute."""
    return value if os.path.isabs(value) else os.path.join(base_dir, value)


def _clamp(value: Number, min_value: Optional[Number], max_value: Optional[Number]) -> Number:
    if min_value is not None and value < min_value:
        return min_value
    if max_value is not None and value > max_value:
        return max_value
    return value


def _parse_number_env(
    name: str,
    default: Number,
    cast: Callable[[str], Number],
    min_value: Optional[Number],
    max_value: Optional[Number],
) -> Number:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return _clamp(default, min_value, max_value)
    try:
        value = cast(raw.strip())
    except ValueError:
        value = default
    return _clamp(value, min_value, max_value)


def parse_int_env(
    name: str,
    default: int,
    *,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """Parse an integer environment variable, clamped to the given bounds."""
    return _parse_number_env(name, default, int, min_value, max_value)


def parse_float_env(
    name: str,
    default: float,
    *,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    """Parse a float environment variable, clamped to the given bounds."""
    return _parse_number_env(name, default, float, min_value, max_value)


def parse_flag_env(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if raw in TRUTHY:
        return True
    if raw in FALSY:
        return False
    return default


def parse_choice_env(name: str, default: str, choices: Sequence[str]) -> str:
    """Read a lower-cased choice; anything outside ``choices`` falls back to default."""
    value = os.getenv(name, default).strip().lower()
    return value if value in choices else default
