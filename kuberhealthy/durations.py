"""Parsing of duration strings such as ``"10m"``, ``"1h30m"`` or ``"300ms"``."""

from __future__ import annotations

import re
from datetime import timedelta
from fractions import Fraction

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,  # micro sign
    "\u03bcs": 1_000,  # Greek small letter mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_MAX_NANOSECONDS = 2**63 - 1

_NUMBER = re.compile(r"(\d*)(?:\.(\d*))?")
_UNIT = re.compile(r"[^0-9.]*")


def _invalid(text: str) -> ValueError:
    return ValueError(f'time: invalid duration "{text}"')


def _nanoseconds(text: str) -> int:
    """Return the number of nanoseconds that ``text`` denotes."""
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return 0
    if not rest:
        raise _invalid(text)

    limit = _MAX_NANOSECONDS + (1 if negative else 0)
    total = Fraction(0)
    while rest:
        number = _NUMBER.match(rest)
        whole, fraction = number.group(1), number.group(2)
        if not whole and not fraction:
            raise _invalid(text)
        rest = rest[number.end():]

        unit = _UNIT.match(rest).group(0)
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        rest = rest[len(unit):]

        value = Fraction(int(whole or "0"))
        if fraction:
            value += Fraction(int(fraction), 10 ** len(fraction))
        total += value * _UNITS[unit]
        if total > limit:
            raise _invalid(text)

    nanoseconds = int(total)
    return -nanoseconds if negative else nanoseconds


def parse_duration(text: str) -> timedelta:
    """Parse a duration string made of number/unit pairs into a timedelta.

    Valid units are ``ns``, ``us`` (or ``µs``), ``ms``, ``s``, ``m`` and ``h``.
    Precision below a microsecond is truncated. Raises ValueError on bad input.
    """
    nanoseconds = _nanoseconds(text)
    microseconds = abs(nanoseconds) // 1_000
    return timedelta(microseconds=-microseconds if nanoseconds < 0 else microseconds)