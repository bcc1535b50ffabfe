"""Tracker pose models.

A :class:`TrackerUpdate` is one accepted inbound message; a
:class:`TrackerRecord` is the last known pose the store keeps per tracker.
Both are frozen, so a stored record can only change by being replaced.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from trackrelay.ingestion.normalize import to_float32

Vector3 = tuple[float, float, float]
"""A 3-axis vector quantized to float32 precision."""

ZERO_VECTOR: Vector3 = (0.0, 0.0, 0.0)


class PayloadKind(StrEnum):
    POSITION = "position"
    ROTATION = "rotation"


def _quantize(value: Vector3 | None) -> Vector3 | None:
    if value is None:
        return None
    x, y, z = value
    return (to_float32(x), to_float32(y), to_float32(z))


class TrackerUpdate(BaseModel):
    """A single position or rotation reading for one tracker.

    The wire format never carries both fields in one message, so exactly
    one of ``position`` and ``rotation`` is set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tracker_id: int = Field(..., ge=0)
    position: Vector3 | None = None
    rotation: Vector3 | None = None

    @field_validator("position", "rotation")
    @classmethod
    def _to_float32(cls, value: Vector3 | None) -> Vector3 | None:
        return _quantize(value)

    @model_validator(mode="after")
    def _exactly_one_payload(self) -> TrackerUpdate:
        if (self.position is None) == (self.rotation is None):
            raise ValueError("exactly one of position or rotation must be set")
        return self

    @property
    def kind(self) -> PayloadKind:
        return PayloadKind.POSITION if self.position is not None else PayloadKind.ROTATION


class TrackerRecord(BaseModel):
    """Last known pose of a tracker.

    Parameters
    ----------
    tracker_id : int
        Tracker identifier taken from the wire address.
    position : Vector3
        Last known position in source units. Zero until first set.
    rotation : Vector3
        Last known rotation in degrees, after flip correction. Zero until
        first set.
    has_position : bool
        Whether any update has set ``position``.
    has_rotation : bool
        Whether any update has set ``rotation``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tracker_id: int = Field(..., ge=0)
    position: Vector3 = ZERO_VECTOR
    rotation: Vector3 = ZERO_VECTOR
    has_position: bool = False
    has_rotation: bool = False

    @field_validator("position", "rotation")
    @classmethod
    def _to_float32(cls, value: Vector3) -> Vector3:
        return _quantize(value)  # type: ignore[return-value]
