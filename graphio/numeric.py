"""
Exact numeric parsing for exported game values.

The host environment prints numbers with ``tostring``, so values that are
conceptually exact (crafting speeds, temperatures, probabilities) arrive as
truncated decimal text.  Integers are parsed exactly; fractional parts are
snapped to the closest fraction with a small denominator so the model can
keep doing exact rational arithmetic.
"""

from __future__ import annotations

import math
import re
from fractions import Fraction
from typing import Tuple

from .errors import NumericParseError

MAX_DENOMINATOR = 1000
APPROXIMATION_TOLERANCE = 1e-8

_DIGITS = re.compile(r"[0-9]+")
_CANONICAL_INT = re.compile(r"-?[0-9]+")
_CANONICAL_RATIO = re.compile(r"(-?[0-9]+)(?:/([0-9]+))?")


def parse_int(text: str) -> int:
    """Parse ``[-]DIGITS`` into an arbitrary-precision integer."""

    negative = text.startswith("-")
    digits = text[1:] if negative else text
    if not digits:
        raise NumericParseError(f"expected integer, got {text!r}")
    if not _DIGITS.fullmatch(digits):
        raise NumericParseError(f"unexpected non-digit in integer {text!r}")
    value = int(digits)
    return -value if negative else value


def approximate_fraction(
    approx: float,
    *,
    max_denominator: int = MAX_DENOMINATOR,
    tolerance: float = APPROXIMATION_TOLERANCE,
) -> Tuple[int, int]:
    """
    Return ``(num, den)`` with ``1 <= den <= max_denominator`` and
    ``0 <= num < den`` minimising ``|approx - num/den|``.

    Candidates are visited by ascending denominator, then ascending numerator,
    and only a strictly better candidate replaces the current best, so ties go
    to the earliest pair.  The walk stops as soon as a candidate lands within
    ``tolerance``.  For each denominator only the numerators around
    ``approx * den`` can win, so those are the only ones evaluated.
    """

    if approx <= 0.0:
        return 0, 1
    best_delta, best_num, best_den = approx, 0, 1
    for den in range(1, max_denominator + 1):
        centre = math.floor(approx * den)
        for num in range(max(1, centre - 1), min(den - 1, centre + 2) + 1):
            delta = abs(approx - num / den)
            if delta < best_delta:
                best_delta, best_num, best_den = delta, num, den
                if delta <= tolerance:
                    return best_num, best_den
    return best_num, best_den


def parse_ratio(text: str) -> Fraction:
    """
    Parse ``[-]INTEGER[.FRACTION]`` into an exact :class:`Fraction`.

    The integer part is taken exactly; the fractional part is read as a float
    and replaced by its closest small-denominator fraction.
    """

    if not text:
        raise NumericParseError("expected ratio, got empty string")
    negative = text.startswith("-")
    body = text[1:] if negative else text
    whole, period, fraction = body.partition(".")
    if period:
        if "e" in fraction or "E" in fraction:
            raise NumericParseError(f"scientific notation not supported: {text!r}")
        if not _DIGITS.fullmatch(fraction):
            raise NumericParseError(f"cannot parse fractional part of {text!r}")
    elif not whole:
        raise NumericParseError(f"expected ratio, got {text!r}")
    if whole and not _DIGITS.fullmatch(whole):
        raise NumericParseError(f"unexpected non-digit in ratio {text!r}")

    value = Fraction(int(whole) if whole else 0)
    if period:
        num, den = approximate_fraction(float("0." + fraction))
        value += Fraction(num, den)
    return -value if negative else value


def format_ratio(value: Fraction) -> str:
    """Canonical text form: ``num/den`` in lowest terms, or ``num`` when whole."""

    if value.denominator == 1:
        return str(value.numerator)
    return f"{value.numerator}/{value.denominator}"


def parse_canonical_ratio(text: str) -> Fraction:
    match = _CANONICAL_RATIO.fullmatch(text)
    if not match:
        raise NumericParseError(f"not a canonical ratio: {text!r}")
    numerator = int(match.group(1))
    denominator = int(match.group(2)) if match.group(2) is not None else 1
    if denominator == 0:
        raise NumericParseError(f"zero denominator in ratio {text!r}")
    return Fraction(numerator, denominator)


def format_int(value: int) -> str:
    return str(value)


def parse_canonical_int(text: str) -> int:
    if not _CANONICAL_INT.fullmatch(text):
        raise NumericParseError(f"not a canonical integer: {text!r}")
    return int(text)
