"""Bind environment variables of a namespace into typed destinations.

A ``Namespace`` derives ``PREFIX_LABEL`` names, reads them from the
environment and writes the parsed value into a destination::

    ns = Namespace("app")
    retries = Var(0)
    binding = ns.bind_int("max retries", retries, default=3)
    print(binding)  # APP_MAX_RETRIES=3

Bind calls never raise for bad environment content. A malformed value falls
back to the default when one is given, otherwise the destination keeps its
previous value.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, Mapping, NamedTuple, Optional, TypeVar

import env_utils
from env_utils import IPAddress, IPNetwork


T = TypeVar("T")

EnvBindFunc = Callable[[str, bool], str]

logger = logging.getLogger(__name__)

_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def _quote(value: str) -> str:
    out = ['"']
    for ch in value:
        code = ord(ch)
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif code < 0x20 or code == 0x7F:
            out.append(f"\\x{code:02x}")
        elif ch.isprintable():
            out.append(ch)
        elif code < 0x10000:
            out.append(f"\\u{code:04x}")
        else:
            out.append(f"\\U{code:08x}")
    out.append('"')
    return "".join(out)


def normalize(s: str) -> str:
    # Simple per-character case mapping: letters without a single-character
    # upper case form (such as "ß") are kept as they are.
    out = []
    for ch in s.replace(" ", "_"):
        upper = ch.upper()
        out.append(upper if len(upper) == 1 else ch)
    return "".join(out)


@dataclass(frozen=True)
class Binding:
    """One resolved environment variable: its name and the value observed."""

    name: str
    value: str = ""

    def __str__(self) -> str:
        if '"' in self.value:
            return f"{self.name}={_quote(self.value)}"
        return f"{self.name}={self.value}"


class Var(Generic[T]):
    """Mutable cell used as a bind destination."""

    def __init__(self, value: Optional[T] = None):
        self.value = value

    def set(self, value: T) -> None:
        self.value = value

    def __repr__(self):
        return f"Var({self.value!r})"


@dataclass(frozen=True)
class AttrTarget:
    """Destination that writes into an attribute of another object."""

    obj: Any
    attr: str

    def set(self, value: Any) -> None:
        setattr(self.obj, self.attr, value)


def _write(destination: Any, value: Any) -> None:
    setter = getattr(destination, "set", None)
    if callable(setter):
        setter(value)
        return
    if callable(destination):
        destination(value)
        return
    raise TypeError(f"unsupported bind destination: {type(destination).__name__}")


class Lookup(NamedTuple):
    raw: str
    present: bool


class Namespace:
    """Environment variable binder for one prefix."""

    def __init__(
        self,
        prefix: str,
        environ: Optional[Mapping[str, str]] = None,
        warnings: Optional[list[str]] = None,
    ):
        self._prefix = normalize(prefix)
        self._environ = environ
        self._warnings = warnings

    @property
    def prefix(self) -> str:
        return self._prefix

    def __repr__(self):
        return f"Namespace({self._prefix!r})"

    def name_for(self, label: str) -> str:
        return f"{self._prefix}_{normalize(label)}"

    def _lookup(self, name: str) -> Lookup:
        environ = os.environ if self._environ is None else self._environ
        raw = environ.get(name)
        if raw is None:
            return Lookup("", False)
        return Lookup(raw, True)

    def _bind(
        self,
        label: str,
        destination: Any,
        default: Optional[T],
        parse: Callable[[str], T],
        fmt: Callable[[T], str],
        kind: str,
    ) -> Binding:
        name = self.name_for(label)
        lookup = self._lookup(name)

        if lookup.present:
            observed = lookup.raw
        elif default is not None:
            observed = fmt(default)
        else:
            logger.debug("%s is not set and has no default", name)
            return Binding(name)

        try:
            parsed = parse(observed)
        except ValueError as exc:
            if lookup.present:
                self._warn(name, observed, default, kind)
            if default is not None:
                logger.debug("%s: %s; using default %r", name, exc, default)
                _write(destination, default)
            else:
                logger.debug("%s: %s; leaving destination unchanged", name, exc)
            return Binding(name, observed)

        _write(destination, parsed)
        return Binding(name, observed)

    def _warn(self, name: str, raw: str, default: Any, kind: str) -> None:
        if self._warnings is None:
            return
        if default is None:
            self._warnings.append(f"Invalid {kind} for {name}='{raw}'. Leaving value unchanged.")
        else:
            self._warnings.append(f"Invalid {kind} for {name}='{raw}'. Using default {default}.")

    def bind_string(self, label: str, destination: Any, *, default: Optional[str] = None) -> Binding:
        return self._bind(label, destination, default, env_utils.parse_str, env_utils.format_str, "string")

    def bind_int(self, label: str, destination: Any, *, default: Optional[int] = None) -> Binding:
        return self._bind(label, destination, default, env_utils.parse_int, env_utils.format_int, "integer")

    def bind_uint(self, label: str, destination: Any, *, default: Optional[int] = None) -> Binding:
        return self._bind(
            label, destination, default, env_utils.parse_uint, env_utils.format_int, "unsigned integer"
        )

    def bind_float(self, label: str, destination: Any, *, default: Optional[float] = None) -> Binding:
        return self._bind(label, destination, default, env_utils.parse_float, env_utils.format_float, "number")

    def bind_bool(self, label: str, destination: Any, *, default: Optional[bool] = None) -> Binding:
        return self._bind(label, destination, default, env_utils.parse_bool, env_utils.format_bool, "boolean")

    def bind_ip_address(self, label: str, destination: Any, *, default: Optional[IPAddress] = None) -> Binding:
        return self._bind(
            label, destination, default, env_utils.parse_ip_address, env_utils.format_ip_address, "IP address"
        )

    def bind_ip_network(self, label: str, destination: Any, *, default: Optional[IPNetwork] = None) -> Binding:
        return self._bind(
            label, destination, default, env_utils.parse_ip_network, env_utils.format_ip_network, "IP network"
        )

    def bind_timestamp(self, label: str, destination: Any, *, default: Optional[datetime] = None) -> Binding:
        return self._bind(
            label, destination, default, env_utils.parse_timestamp, env_utils.format_timestamp, "timestamp"
        )

    def bind_duration(self, label: str, destination: Any, *, default: Optional[timedelta] = None) -> Binding:
        return self._bind(
            label,
            destination,
            default,
            env_utils.parse_duration_value,
            env_utils.format_duration_value,
            "duration",
        )

    def bind_with_func(self, label: str, fn: EnvBindFunc) -> Binding:
        """Hand the raw value to ``fn`` and record whatever string it returns.

        ``fn`` receives ``("", False)`` when the variable is not set and is
        responsible for any typed side effect itself.
        """
        name = self.name_for(label)
        lookup = self._lookup(name)
        return Binding(name, fn(lookup.raw, lookup.present))


def new_namespace(
    prefix: str,
    environ: Optional[Mapping[str, str]] = None,
    warnings: Optional[list[str]] = None,
) -> Namespace:
    return Namespace(prefix, environ=environ, warnings=warnings)
