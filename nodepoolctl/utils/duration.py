"""Parsing and validation of duration strings such as ``60s`` or ``1m30s``."""
import re
from typing import Optional

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a duration string into seconds.

    Accepts a sequence of decimal numbers each followed by a unit
    (``ns``, ``us``, ``ms``, ``s``, ``m``, ``h``), with an optional sign,
    e.g. ``300s``, ``1.5h`` or ``2m30s``. A bare ``0`` is also accepted.

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    if pos == 0:
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


def format_duration(seconds: float) -> str:
    """Render seconds the way they are written in the settings, e.g. ``1m30s``."""
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{int(hours)}h"
    if minutes:
        out += f"{int(minutes)}m"
    if secs or not out:
        out += f"{secs:g}s"
    return sign + out


def validate_duration(value: str, name: str = "duration",
                      min_seconds: Optional[float] = None,
                      max_seconds: Optional[float] = None) -> float:
    """Parse ``value`` and check it lies within the given bounds.

    Returns:
        The duration in seconds

    Raises:
        ValueError: If the value is not a duration or is out of range
    """
    try:
        parsed = parse_duration(value)
    except ValueError:
        raise ValueError(f"Attribute {name} is not a duration, got: {value}") from None

    if min_seconds is not None and parsed < min_seconds:
        raise ValueError(
            f"Attribute {name} is smaller than minimum allowed duration "
            f"{format_duration(min_seconds)}, got: {value}"
        )
    if max_seconds is not None and parsed > max_seconds:
        raise ValueError(
            f"Attribute {name} is greater than maximum allowed duration "
            f"{format_duration(max_seconds)}, got: {value}"
        )
    return parsed
