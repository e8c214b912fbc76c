from __future__ import annotations

import math
from typing import Any


def parse_decimal(value: Any) -> float | None:
    """Parse raw form input into a finite float. None when it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            f = float(s)
        except ValueError:
            return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def parse_int(value: Any) -> int | None:
    """Parse raw form input into an int. Fractional values are rejected."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        try:
            return int(s)
        except ValueError:
            pass
    f = parse_decimal(value)
    if f is None or not f.is_integer():
        return None
    return int(f)


def as_text(value: Any) -> str:
    # numbers coming back from the API are edited as text
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
