"""Coercion of query results into metric values and label text.

Results are untyped JSON values: None, bool, int, float, str, list or dict.
Numeric coercions take ints and floats directly where the target type allows
and otherwise parse the value's canonical text form, so the string "42" is a
valid counter value and 10.0 (text "10") is too.
"""

import json
import math
import re
from typing import Any

from jqprobe.core.errors import CoercionError
from jqprobe.core.models import COUNTER, GAUGE

UINT64_MAX = 2**64 - 1

_UNSIGNED_DECIMAL = re.compile(r"[0-9]+")
_FLOAT_TEXT = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


def format_float(value: float) -> str:
    """Format a float in its shortest natural decimal form.

    Integral values below 1e21 print without a fraction ("10"), larger or
    fractional values use the shortest round-tripping form ("12.5", "1e+21").
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def format_scalar(value: Any) -> str:
    """Return the canonical text form of a JSON value."""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "None"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def as_counter_value(value: Any) -> int:
    """Coerce a result to an unsigned 64-bit counter value.

    Raises:
        CoercionError: If the value is negative, non-integral, non-numeric or
            does not fit in 64 bits.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value <= UINT64_MAX:
            return value
        raise CoercionError(COUNTER, value)
    text = format_scalar(value)
    if not _UNSIGNED_DECIMAL.fullmatch(text):
        raise CoercionError(COUNTER, value)
    number = int(text)
    if number > UINT64_MAX:
        raise CoercionError(COUNTER, value)
    return number


def as_gauge_value(value: Any) -> float:
    """Coerce a result to a float gauge value.

    Raises:
        CoercionError: If the value's text form is not a decimal float or is
            out of range.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return float(value)
        except OverflowError as exc:
            raise CoercionError(GAUGE, value) from exc
    text = format_scalar(value)
    if not _FLOAT_TEXT.fullmatch(text):
        raise CoercionError(GAUGE, value)
    number = float(text)
    if math.isinf(number) and "inf" not in text.lower():
        raise CoercionError(GAUGE, value)
    return number


def as_label_value(value: Any) -> str:
    """Render any result as label text. Never fails."""
    return format_scalar(value)
