"""Parsing of resource quantities such as ``"500m"``, ``"2Gi"`` or ``"1e3"``."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from fractions import Fraction

_FORMAT_ERROR = (
    "quantities must match the regular expression "
    "'^([+-]?[0-9.]+)([eEinumkKMGTP]*[-+]?[0-9]*)$'"
)

_NUMBER = re.compile(r"([+-]?)(\d+(?:\.\d*)?|\.\d+)(.*)", re.DOTALL)
_EXPONENT = re.compile(r"[eE]([+-]?\d+)")
_MAX_EXPONENT = 1000

_BINARY_SUFFIXES = {
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}

_DECIMAL_SUFFIXES = {
    "n": Fraction(1, 10**9),
    "u": Fraction(1, 10**6),
    "m": Fraction(1, 10**3),
    "": Fraction(1),
    "k": Fraction(10**3),
    "M": Fraction(10**6),
    "G": Fraction(10**9),
    "T": Fraction(10**12),
    "P": Fraction(10**15),
    "E": Fraction(10**18),
}


def _multiplier(suffix: str) -> Fraction:
    if suffix in _BINARY_SUFFIXES:
        return Fraction(_BINARY_SUFFIXES[suffix])
    if suffix in _DECIMAL_SUFFIXES:
        return _DECIMAL_SUFFIXES[suffix]
    exponent = _EXPONENT.fullmatch(suffix)
    if exponent is None:
        raise ValueError("unable to parse quantity's suffix")
    power = int(exponent.group(1))
    if abs(power) > _MAX_EXPONENT:
        raise ValueError("quantity exponent out of range")
    return Fraction(10) ** power


def parse_quantity(text: str) -> Fraction:
    """Return the exact value of a quantity string; raise ValueError if malformed."""
    if not isinstance(text, str):
        text = str(text)
    if not text:
        raise ValueError("quantities must not be empty")
    match = _NUMBER.fullmatch(text)
    if match is None:
        raise ValueError(_FORMAT_ERROR)
    sign, digits, suffix = match.groups()
    value = Fraction(Decimal(digits)) * _multiplier(suffix)
    return -value if sign == "-" else value


def milli_value(text: str) -> int:
    """Return the quantity in thousandths, rounding fractions away from zero."""
    scaled = parse_quantity(text) * 1000
    if scaled >= 0:
        return math.ceil(scaled)
    return math.floor(scaled)