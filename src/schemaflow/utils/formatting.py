"""
Value formatting for schema text.

Formats interpolated values as fixed-decimal numbers, K/M/B-abbreviated
volumes, or local date/time strings.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any

from schemaflow.specs.node import FormatKind, FormatSpec
from schemaflow.utils.expression_eval import (
    NAN_TEXT,
    PLACEHOLDER_RE,
    parse_leading_float,
    render_placeholder,
    to_display_string,
)

# Locale date+time and time-of-day representations
DATETIME_PATTERN = "%x %X"
TIME_PATTERN = "%X"

INVALID_DATE = "Invalid Date"

_VOLUME_STEPS = ((1e9, "B"), (1e6, "M"), (1e3, "K"))

_EPOCH_RE = re.compile(r"\s*-?\d+(?:\.\d+)?\s*")


def to_fixed(value: float, decimals: int) -> str:
    """Render ``value`` with exactly ``decimals`` decimal places."""
    if math.isnan(value):
        return NAN_TEXT
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return f"{value:.{max(decimals, 0)}f}"


def abbreviate_volume(value: float, decimals: int) -> str:
    """Abbreviate with B/M/K suffixes at the 1e9/1e6/1e3 thresholds.

    Example:
        >>> abbreviate_volume(1_500_000, 2)
        '1.50M'
        >>> abbreviate_volume(999, 2)
        '999.00'
    """
    for threshold, suffix in _VOLUME_STEPS:
        if value >= threshold:
            return f"{to_fixed(value / threshold, decimals)}{suffix}"
    return to_fixed(value, decimals)


def parse_timestamp(value: Any) -> datetime | None:
    """Interpret a value as a point in time, in local time.

    Numbers and purely numeric strings are millisecond epoch timestamps;
    other strings are parsed as ISO-8601 date/time text.
    """
    try:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return datetime.fromtimestamp(value / 1000)
        text = to_display_string(value)
        if _EPOCH_RE.fullmatch(text):
            return datetime.fromtimestamp(float(text) / 1000)
        parsed = datetime.fromisoformat(text.strip())
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is not None:
        return parsed.astimezone()
    return parsed


def _format_timestamp(value: Any, pattern: str) -> str:
    moment = parse_timestamp(value)
    if moment is None:
        return INVALID_DATE
    return moment.strftime(pattern)


def format_value(value: Any, spec: FormatSpec) -> str:
    """Format a single value according to ``spec``, then apply prefix/suffix."""
    decimals = spec.decimals or 0

    match spec.type:
        case FormatKind.NUMBER:
            result = to_fixed(parse_leading_float(to_display_string(value)), decimals)
        case FormatKind.VOLUME:
            result = abbreviate_volume(parse_leading_float(to_display_string(value)), decimals)
        case FormatKind.DATETIME:
            result = _format_timestamp(value, DATETIME_PATTERN)
        case FormatKind.TIME:
            result = _format_timestamp(value, TIME_PATTERN)
        case _:
            result = to_display_string(value)

    return f"{spec.prefix or ''}{result}{spec.suffix or ''}"


def format_template(text: str, spec: FormatSpec, data: Any, item: Any = None) -> str:
    """Interpolate each placeholder of ``text`` and format it; literal text is kept."""
    return PLACEHOLDER_RE.sub(
        lambda m: format_value(render_placeholder(m.group(1), data, item), spec),
        text,
    )
