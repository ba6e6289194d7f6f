"""
Common utility functions and helpers.
"""
from typing import Any, List
import re


def normalize_text(text: str) -> str:
    """
    Collapse runs of whitespace into single spaces.

    Args:
        text: Raw text string

    Returns:
        Normalized text
    """
    return re.sub(r'\s+', ' ', text).strip()


def clamp_number(value: Any, lo: float, hi: float, default: float) -> float:
    """
    Parse *value* as a float clamped to [lo, hi].

    Args:
        value: Raw value (number, numeric string, ...)
        lo: Lower bound
        hi: Upper bound
        default: Returned when *value* cannot be parsed

    Returns:
        Clamped float
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(lo, min(hi, number))


def clamp_int(value: Any, lo: int, hi: int, default: int) -> int:
    """Integer variant of :func:`clamp_number` (fractions are truncated)."""
    return int(clamp_number(value, lo, hi, default))


def string_list(value: Any) -> List[str]:
    """
    Coerce an LLM-supplied sequence into a list of non-empty strings.

    Args:
        value: Expected to be a list; anything else yields an empty list

    Returns:
        List of stripped strings
    """
    if not isinstance(value, (list, tuple)):
        return []
    items: List[str] = []
    for item in value:
        if item is None:
            continue
        text = item if isinstance(item, str) else str(item)
        text = text.strip()
        if text:
            items.append(text)
    return items


def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
