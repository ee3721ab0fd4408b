"""
Scalar decoding and text capture for element content.

Numbers are decoded the way strtod/strtol read them: leading whitespace is
skipped, the longest valid numeric prefix is taken and trailing characters
are ignored. Decoding fails when no characters form a number or when the
value falls outside the representable range.

Text capture keeps "absent" (None) distinct from "present but empty" ("").
"""

import math
import re
from typing import Callable, Dict, Optional

from ..core.constants import INT_MIN, INT_MAX, DEFAULT_MAX_TEXT
from ..core.errors import MalformedNumberError
from ..core.types import Scalar


_FLOAT_PREFIX = re.compile(
    r"""\s*
    (?P<number>
        [+-]?
        (?:
            (?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?
          | inf(?:inity)?
          | nan
        )
    )""",
    re.VERBOSE | re.IGNORECASE,
)

_INT_PREFIX = re.compile(r"\s*(?P<number>[+-]?\d+)")

_INT_MAX_DIGITS = len(str(INT_MAX))

# Mantissa digits other than zero; used to tell a true 0.0 from an underflow
_NONZERO_MANTISSA = re.compile(r"[1-9]")


def parse_float(text: Optional[str]) -> float:
    """
    Decode a floating-point value from element text.

    Args:
        text: Element text (None when the element had no readable text)

    Returns:
        Decoded value

    Raises:
        MalformedNumberError: If no number could be read, or if the literal
            overflows to infinity or underflows to zero

    Examples:
        >>> parse_float("12.5")
        12.5
        >>> parse_float("  -3e2 km/h")
        -300.0
    """
    if text is None:
        raise MalformedNumberError("", "float", "no text")
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        raise MalformedNumberError(text, "float")

    literal = match.group("number")
    value = float(literal)

    if math.isinf(value) and "inf" not in literal.lower():
        raise MalformedNumberError(text, "float", "out of range")
    if value == 0.0:
        mantissa = re.split(r"[eE]", literal, maxsplit=1)[0]
        if _NONZERO_MANTISSA.search(mantissa):
            raise MalformedNumberError(text, "float", "out of range")
    return value


def parse_int(text: Optional[str]) -> int:
    """
    Decode a base-10 integer from element text.

    Raises:
        MalformedNumberError: If no digits could be read or the value does not
            fit a signed 64-bit integer
    """
    if text is None:
        raise MalformedNumberError("", "int", "no text")
    match = _INT_PREFIX.match(text)
    if match is None:
        raise MalformedNumberError(text, "int")

    literal = match.group("number")
    negative = literal.startswith("-")
    digits = literal.lstrip("+-").lstrip("0") or "0"
    # int() refuses very long digit strings, so reject them before converting
    if len(digits) > _INT_MAX_DIGITS:
        raise MalformedNumberError(text, "int", "out of range")

    value = -int(digits) if negative else int(digits)
    if value < INT_MIN or value > INT_MAX:
        raise MalformedNumberError(text, "int", "out of range")
    return value


SCALAR_DECODERS: Dict[str, Callable[[Optional[str]], Scalar]] = {
    "float": parse_float,
    "int": parse_int,
}


def get_decoder(kind: str) -> Callable[[Optional[str]], Scalar]:
    try:
        return SCALAR_DECODERS[kind]
    except KeyError:
        raise ValueError(f"Unknown scalar kind: {kind}") from None


class TextCapture:
    """
    Capture policy for identifier, context and announcement text.

    'bounded' silently truncates to max_length characters; 'dynamic' keeps
    the text at its exact length. Absent input stays None under both.
    """

    def __init__(self, policy: str = "bounded", max_length: int = DEFAULT_MAX_TEXT):
        if policy not in ("bounded", "dynamic"):
            raise ValueError(f"Unknown text policy: {policy}")
        if max_length <= 0:
            raise ValueError(f"max_length must be > 0, got: {max_length}")
        self.policy = policy
        self.max_length = max_length

    def capture(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if self.policy == "bounded" and len(value) > self.max_length:
            return value[:self.max_length]
        return value
