from __future__ import annotations

import math
from typing import Any, Optional

from .models import optional_fraction


def _clean_number_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(float(value)) else repr(float(value))
    if not isinstance(value, str):
        return None
    return value.replace("%", "").strip()


def parse_percentage(value: Any) -> float:
    """Parse "70%", "70", "0.7" or 0.7 into a fraction; anything unparseable is 0."""
    text = _clean_number_text(value)
    if not text:
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return 0.0
    if math.isnan(number):
        return 0.0
    return number / 100.0 if number > 1 else number


def parse_score(value: Any) -> Optional[float]:
    """Like parse_percentage, but an empty cell means "not yet evaluated"."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and not value.replace("%", "").strip():
        return None
    return parse_percentage(value)


def format_percentage(fraction: Any, precision: int = 0) -> str:
    value = optional_fraction(fraction)
    if value is None:
        return ""
    return f"{value * 100:.{int(precision)}f}%"


def acronym(name: Any) -> str:
    text = str(name or "").strip()
    if not text:
        return ""
    words = text.split()
    if len(words) > 1:
        return "".join(word[0] for word in words[:3]).upper()
    return text[:3].upper()
