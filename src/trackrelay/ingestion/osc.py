"""OSC address translation.

This module translates decoded OSC messages into tracker updates. It is a
pure function of its inputs: malformed messages are rejected by returning
``None`` and are never raised as errors.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from trackrelay._constants import ADDRESS_COLLECTION, ADDRESS_ROOT, VECTOR_ARITY
from trackrelay.ingestion.normalize import parse_tracker_id, safe_float32
from trackrelay.models.tracker import PayloadKind, TrackerUpdate, Vector3

_logger = logging.getLogger(__name__)


def _parse_vector(arguments: Sequence[Any]) -> Vector3 | None:
    if len(arguments) != VECTOR_ARITY:
        return None
    values: list[float] = []
    for argument in arguments:
        value = safe_float32(argument)
        if value is None:
            return None
        values.append(value)
    x, y, z = values
    return (x, y, z)


def _classify(address: str) -> PayloadKind | None:
    # Position wins when both substrings appear.
    if PayloadKind.POSITION.value in address:
        return PayloadKind.POSITION
    if PayloadKind.ROTATION.value in address:
        return PayloadKind.ROTATION
    return None


def translate_message(address: str, arguments: Sequence[Any]) -> TrackerUpdate | None:
    """Translate an OSC message into a :class:`TrackerUpdate`.

    Accepted addresses look like ``/tracking/trackers/{id}/position`` or
    ``/tracking/trackers/{id}/rotation`` and carry exactly three numeric
    arguments. Returns ``None`` for anything else.
    """
    parts = address.split("/")
    if len(parts) < 4 or parts[1] != ADDRESS_ROOT or parts[2] != ADDRESS_COLLECTION:
        _logger.debug("Rejected OSC message: unexpected address %s", address)
        return None

    tracker_id = parse_tracker_id(parts[3])
    if tracker_id is None:
        _logger.debug("Rejected OSC message: bad tracker id in %s", address)
        return None

    vector = _parse_vector(arguments)
    if vector is None:
        _logger.debug("Rejected OSC message %s: expected %d numeric arguments, got %r", address, VECTOR_ARITY, arguments)
        return None

    kind = _classify(address)
    if kind is PayloadKind.POSITION:
        return TrackerUpdate(tracker_id=tracker_id, position=vector)
    if kind is PayloadKind.ROTATION:
        return TrackerUpdate(tracker_id=tracker_id, rotation=vector)

    _logger.debug("Rejected OSC message: no position/rotation in %s", address)
    return None
