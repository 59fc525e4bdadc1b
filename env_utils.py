from __future__ import annotations

import ipaddress
import math
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Union

from env_duration import format_duration, parse_duration


IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
UINT64_MAX = (1 << 64) - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")
_UINT_RE = re.compile(r"[0-9]+")
_PREFIX_LEN_RE = re.compile(r"[0-9]+")
_RFC3339_RE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})"
    r"(?:\.([0-9]{1,9}))?"
    r"(?:(Z)|([+-])([0-9]{2}):([0-9]{2}))"
)

_TRUTHY = {"1", "true"}
_FALSY = {"0", "false"}


def parse_str(raw: str) -> str:
    return raw


def format_str(value: str) -> str:
    return value


def parse_int(raw: str) -> int:
    if not _INT_RE.fullmatch(raw):
        raise ValueError(f"invalid integer {raw!r}")
    value = int(raw)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"integer {raw!r} out of range")
    return value


def parse_uint(raw: str) -> int:
    if not _UINT_RE.fullmatch(raw):
        raise ValueError(f"invalid unsigned integer {raw!r}")
    value = int(raw)
    if value > UINT64_MAX:
        raise ValueError(f"unsigned integer {raw!r} out of range")
    return value


def format_int(value: int) -> str:
    return str(value)


def parse_float(raw: str) -> float:
    # float() would also strip whitespace and accept separators and non-ASCII digits.
    if raw != raw.strip() or "_" in raw or not raw.isascii():
        raise ValueError(f"invalid number {raw!r}")
    value = float(raw)
    if math.isinf(value) and "inf" not in raw.lower():
        raise ValueError(f"number {raw!r} out of range")
    return value


def format_float(value: float) -> str:
    """Shortest round-trip decimal, never in exponent notation."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"invalid boolean {raw!r}")


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def parse_ip_address(raw: str) -> IPAddress:
    text = raw.strip()
    if "%" in text:
        raise ValueError(f"scoped IP address not allowed {raw!r}")
    return ipaddress.ip_address(text)


def format_ip_address(value: IPAddress) -> str:
    return str(value)


def parse_ip_network(raw: str) -> IPNetwork:
    """Parse ``address/prefix-length``; host bits are masked off."""
    text = raw.strip()
    address, sep, prefix_len = text.partition("/")
    if not sep or not address or not _PREFIX_LEN_RE.fullmatch(prefix_len):
        raise ValueError(f"invalid CIDR address {raw!r}")
    return ipaddress.ip_network(text, strict=False)


def format_ip_network(value: IPNetwork) -> str:
    return str(value)


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp with optional fractional seconds.

    Fractions finer than a microsecond are truncated. The result is always
    timezone-aware.
    """
    match = _RFC3339_RE.fullmatch(raw.strip())
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp {raw!r}")
    year, month, day, hour, minute, second, frac, zulu, sign, off_h, off_m = match.groups()

    if zulu:
        tz = timezone.utc
    else:
        if int(off_h) > 23 or int(off_m) > 59:
            raise ValueError(f"invalid time zone offset in {raw!r}")
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        tz = timezone(-offset if sign == "-" else offset)

    micros = int((frac or "0").ljust(6, "0")[:6])
    return datetime(
        int(year), int(month), int(day),
        int(hour), int(minute), int(second),
        micros, tzinfo=tz,
    )


def format_timestamp(value: datetime) -> str:
    # Generic textual form; it is not RFC 3339 and parse_timestamp rejects it.
    return str(value)


def format_duration_value(value: timedelta) -> str:
    return format_duration(value)


def parse_duration_value(raw: str) -> timedelta:
    return parse_duration(raw.strip())
