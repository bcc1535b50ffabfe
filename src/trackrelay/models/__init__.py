"""Tracker pose models."""

from trackrelay.models.tracker import (
    ZERO_VECTOR,
    PayloadKind,
    TrackerRecord,
    TrackerUpdate,
    Vector3,
)

__all__ = [
    "PayloadKind",
    "TrackerRecord",
    "TrackerUpdate",
    "Vector3",
    "ZERO_VECTOR",
]
