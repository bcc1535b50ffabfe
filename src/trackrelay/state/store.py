"""In-memory tracker state store.

This is the only component allowed to merge incoming tracker updates.
"""

from __future__ import annotations

import logging

from trackrelay._constants import DEFAULT_INVERSION_THRESHOLD
from trackrelay.models.tracker import TrackerRecord, TrackerUpdate
from trackrelay.state._rwlock import ReadWriteLock
from trackrelay.state.inversion import detect_orientation_inversion, invert_orientation

_logger = logging.getLogger(__name__)


def _merge_update(previous: TrackerRecord | None, update: TrackerUpdate) -> TrackerRecord:
    """Apply the field carried by *update* onto *previous*.

    The untouched field is carried over, or stays at its zero default when
    there is no previous record.
    """
    base = previous if previous is not None else TrackerRecord(tracker_id=update.tracker_id)
    if update.position is not None:
        return base.model_copy(update={"position": update.position, "has_position": True})
    return base.model_copy(update={"rotation": update.rotation, "has_rotation": True})


class TrackerStore:
    """Last known pose per tracker id.

    Writes are expected from a single owner (the pipeline's update worker);
    reads may come from anywhere. Every write replaces the stored record
    with a new frozen object under the write lock, so a reader always sees
    a complete record.
    """

    def __init__(self, *, inversion_threshold: float = DEFAULT_INVERSION_THRESHOLD) -> None:
        self._inversion_threshold = inversion_threshold
        self._trackers: dict[int, TrackerRecord] = {}
        self._lock = ReadWriteLock()

    @property
    def inversion_threshold(self) -> float:
        return self._inversion_threshold

    def upsert(self, update: TrackerUpdate) -> TrackerRecord:
        """Merge *update* into the stored record and return the new record."""
        with self._lock.write():
            previous = self._trackers.get(update.tracker_id)

            if update.rotation is not None and previous is not None:
                if detect_orientation_inversion(
                    previous.rotation,
                    update.rotation,
                    threshold=self._inversion_threshold,
                ):
                    corrected = invert_orientation(update.rotation)
                    _logger.debug(
                        "Orientation inversion on tracker %d: previous=%s new=%s corrected=%s",
                        update.tracker_id,
                        previous.rotation,
                        update.rotation,
                        corrected,
                    )
                    update = update.model_copy(update={"rotation": corrected})

            record = _merge_update(previous, update)
            self._trackers[update.tracker_id] = record
        return record

    def get(self, tracker_id: int) -> TrackerRecord | None:
        """Return the last known record for *tracker_id*, if any."""
        with self._lock.read():
            return self._trackers.get(tracker_id)

    def snapshot(self) -> dict[int, TrackerRecord]:
        """Return a point-in-time copy of every stored record."""
        with self._lock.read():
            return dict(self._trackers)

    def tracker_ids(self) -> list[int]:
        with self._lock.read():
            return sorted(self._trackers)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._trackers)
