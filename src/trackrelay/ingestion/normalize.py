"""Normalization helpers.

Centralizes defensive parsing of wire values.
"""

from __future__ import annotations

import math
import struct
from typing import Any

_FLOAT32 = struct.Struct("<f")


def to_float32(value: float) -> float:
    """Round *value* to the nearest IEEE-754 single-precision float.

    Raises :class:`OverflowError` when *value* is outside float32 range.
    """
    return _FLOAT32.unpack(_FLOAT32.pack(value))[0]


def safe_float32(value: Any) -> float | None:
    """Coerce an OSC argument to float32, or ``None`` when not numeric.

    Only ``int`` and ``float`` qualify; ``bool`` is an ``int`` subclass
    but carries an OSC true/false tag, so it is rejected. NaN and infinities
    are rejected as well.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        result = to_float32(float(value))
    except (OverflowError, struct.error):
        return None
    if not math.isfinite(result):
        return None
    return result


def parse_tracker_id(segment: str) -> int | None:
    """Parse a non-negative base-10 tracker id from an address segment."""
    if not segment or not segment.isascii() or not segment.isdigit():
        return None
    return int(segment)
