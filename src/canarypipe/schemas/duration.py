"""Duration type for pipeline configuration.

Durations are written the way Go's ``time.ParseDuration`` reads them: a
sequence of decimal numbers each followed by a unit suffix, e.g. ``"10m"``,
``"1h30m"``, ``"1.5s"`` or ``"500ms"``. Valid units are ``ns``, ``us`` (or
``µs``), ``ms``, ``s``, ``m`` and ``h``. ``"0"`` and a bare number are also
accepted; bare numbers are seconds.

The annotated ``Duration`` type validates to ``datetime.timedelta`` and
serializes back to the canonical string form, so a decoded stage can be
encoded and decoded again without loss.

Example:
    >>> parse_duration("1h30m")
    datetime.timedelta(seconds=5400)
    >>> format_duration(timedelta(seconds=5400))
    '1h30m'
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer

_UNIT_MICROSECONDS: dict[str, float] = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}

_COMPONENT_PATTERN = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration string into a timedelta.

    Args:
        value: Duration string such as "10m", "1h30m" or "250ms".

    Returns:
        The parsed duration.

    Raises:
        ValueError: If the string is not a valid duration.

    Examples:
        >>> parse_duration("90s")
        datetime.timedelta(seconds=90)
        >>> parse_duration("-5m")
        datetime.timedelta(days=-1, seconds=86100)
    """
    text = value.strip()
    if not text:
        raise ValueError("invalid duration: empty string")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    pos = 0
    total_us = 0.0
    while pos < len(text):
        match = _COMPONENT_PATTERN.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        number, unit = match.groups()
        total_us += float(number) * _UNIT_MICROSECONDS[unit]
        pos = match.end()

    if pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(microseconds=sign * total_us)


def format_duration(value: timedelta) -> str:
    """Format a timedelta as a canonical Go-style duration string.

    Sub-microsecond precision is not representable by timedelta, so the
    smallest emitted unit is ``us``.

    Args:
        value: Duration to format.

    Returns:
        Canonical duration string ("0" for zero).
    """
    total_us = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if total_us == 0:
        return "0"

    sign = "-" if total_us < 0 else ""
    total_us = abs(total_us)

    hours, rem = divmod(total_us, 3_600_000_000)
    minutes, rem = divmod(rem, 60_000_000)
    seconds, micros = divmod(rem, 1_000_000)

    parts: list[str] = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds:
        parts.append(f"{seconds}s")
    if micros:
        if micros % 1_000 == 0:
            parts.append(f"{micros // 1_000}ms")
        else:
            parts.append(f"{micros}us")
    return sign + "".join(parts)


def _coerce_duration(value: Any) -> Any:
    """Accept duration strings, numbers (seconds) and timedeltas."""
    if value is None:
        return timedelta(0)
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError("invalid duration: boolean")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    if isinstance(value, str):
        return parse_duration(value)
    return value


Duration = Annotated[
    timedelta,
    BeforeValidator(_coerce_duration),
    PlainSerializer(format_duration, return_type=str, when_used="json-unless-none"),
]
"""A time span parsed from a Go-style duration string."""


__all__ = ["Duration", "format_duration", "parse_duration"]
