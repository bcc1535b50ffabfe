"""Orientation inversion detection and correction.

Some sources encode rotations so that an axis occasionally jumps by close
to 180 degrees between consecutive readings without any real motion. This
module contains *no* state; the store decides when to apply it.

Arithmetic is rounded to float32 after every step, matching the precision
the values travel with on the wire.
"""

from __future__ import annotations

from trackrelay._constants import DEFAULT_INVERSION_THRESHOLD
from trackrelay.ingestion.normalize import to_float32
from trackrelay.models.tracker import Vector3


def detect_orientation_inversion(
    previous: Vector3,
    new: Vector3,
    *,
    threshold: float = DEFAULT_INVERSION_THRESHOLD,
) -> bool:
    """Return ``True`` when any axis moved by more than *threshold* degrees."""
    return any(abs(to_float32(old - cur)) > threshold for old, cur in zip(previous, new, strict=True))


def invert_orientation(rotation: Vector3) -> Vector3:
    """Rotate every axis by 180 degrees, wrapping back into (-180, 180]."""
    x, y, z = (_flip_axis(value) for value in rotation)
    return (x, y, z)


def _flip_axis(value: float) -> float:
    flipped = to_float32(value + 180.0)
    if flipped > 180.0:
        flipped = to_float32(flipped - 360.0)
    return flipped
