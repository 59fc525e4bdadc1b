from __future__ import annotations

import re
from datetime import timedelta


# Unit sizes in nanoseconds. Both micro signs are accepted on input.
_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_NUMBER = re.compile(r"([0-9]*)(?:\.([0-9]*))?")
_UNIT = re.compile(r"[^0-9.]+")

_US_PER_MS = 1_000
_US_PER_S = 1_000_000
_US_PER_M = 60 * _US_PER_S
_US_PER_H = 60 * _US_PER_M


def parse_duration(text: str) -> timedelta:
    """Parse a duration literal such as ``"1h30m"``, ``"1.5s"`` or ``"-250ms"``.

    The literal is a possibly signed sequence of decimal numbers, each with an
    optional fraction and a mandatory unit suffix. A bare ``"0"`` is allowed.
    Anything below a microsecond is truncated toward zero.

    Raises:
        ValueError: if the literal is malformed or out of range.
    """
    s = text
    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise ValueError(f"invalid duration {text!r}")

    total_ns = 0
    while s:
        number = _NUMBER.match(s)
        whole, frac = number.group(1), number.group(2)
        if not whole and not frac:
            raise ValueError(f"invalid duration {text!r}")
        s = s[number.end():]

        unit_match = _UNIT.match(s)
        if unit_match is None:
            raise ValueError(f"missing unit in duration {text!r}")
        unit = unit_match.group(0)
        if unit not in _UNITS:
            raise ValueError(f"unknown unit {unit!r} in duration {text!r}")
        s = s[unit_match.end():]

        scale = _UNITS[unit]
        total_ns += int(whole or "0") * scale
        if frac:
            total_ns += int(frac) * scale // 10 ** len(frac)

    micros = total_ns // 1_000
    try:
        value = timedelta(microseconds=micros)
    except OverflowError as exc:
        raise ValueError(f"duration {text!r} out of range") from exc
    return -value if negative else value


def _fraction(value: int, digits: int) -> str:
    if not value:
        return ""
    return "." + str(value).rjust(digits, "0").rstrip("0")


def format_duration(value: timedelta) -> str:
    """Render a timedelta in the literal grammar accepted by parse_duration.

    Durations under a second use the smallest fitting unit (``"250ms"``,
    ``"1.5ms"``, ``"40µs"``); longer ones are written as hours, minutes and
    seconds (``"1h30m0s"``, ``"2m3.5s"``).
    """
    micros = value // timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros == 0:
        return "0s"
    if micros < _US_PER_MS:
        return f"{sign}{micros}µs"
    if micros < _US_PER_S:
        whole, rest = divmod(micros, _US_PER_MS)
        return f"{sign}{whole}{_fraction(rest, 3)}ms"

    hours, rest = divmod(micros, _US_PER_H)
    minutes, rest = divmod(rest, _US_PER_M)
    seconds, rest = divmod(rest, _US_PER_S)

    parts = [sign]
    if hours:
        parts.append(f"{hours}h")
    if hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds}{_fraction(rest, 6)}s")
    return "".join(parts)
