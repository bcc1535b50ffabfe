"""Forward emitter.

Consumes merged records from the pipeline's forwarding queue and sends
them downstream as OSC messages.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from pydantic import BaseModel, ConfigDict

from trackrelay._constants import ADDRESS_TEMPLATE
from trackrelay._transport import OscTransport
from trackrelay.exceptions import RelayTransportError
from trackrelay.models.tracker import ZERO_VECTOR, PayloadKind, TrackerRecord, Vector3

_logger = logging.getLogger(__name__)


class EmitterStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sent: int = 0
    failed: int = 0
    skipped: int = 0


def tracker_address(tracker_id: int, kind: PayloadKind) -> str:
    return ADDRESS_TEMPLATE.format(tracker_id=tracker_id, kind=kind.value)


class ForwardEmitter:
    """Turns each merged record into up to two outbound OSC messages.

    With ``skip_zero_vectors`` (the default) a field whose vector is exactly
    zero is treated as unset and not sent. Otherwise the record's presence
    flags decide, so a tracker resting at the origin is still forwarded.
    """

    def __init__(
        self,
        queue: asyncio.Queue[TrackerRecord],
        transport: OscTransport,
        *,
        skip_zero_vectors: bool = True,
    ) -> None:
        self._queue = queue
        self._transport = transport
        self._skip_zero_vectors = skip_zero_vectors
        self._worker: asyncio.Task[None] | None = None
        self.stats = EmitterStats()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._worker = asyncio.get_running_loop().create_task(self._run(), name="trackrelay-forward-worker")

    async def stop(self, *, drain: bool = True, timeout: float | None = None) -> None:
        """Stop the forward worker, optionally sending what is still queued."""
        worker = self._worker
        if worker is None:
            return
        if drain and not worker.done():
            try:
                await asyncio.wait_for(self._queue.join(), timeout)
            except TimeoutError:
                _logger.warning("Forward drain timed out with %d records pending", self._queue.qsize())
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker
        self._worker = None

    async def emit(self, record: TrackerRecord) -> int:
        """Send the fields of *record* that qualify; return how many were sent."""
        sent = 0
        fields: tuple[tuple[PayloadKind, Vector3, bool], ...] = (
            (PayloadKind.POSITION, record.position, record.has_position),
            (PayloadKind.ROTATION, record.rotation, record.has_rotation),
        )
        for kind, vector, present in fields:
            if not self._should_send(vector, present):
                self.stats.skipped += 1
                continue
            try:
                await self._transport.send(tracker_address(record.tracker_id, kind), vector)
            except RelayTransportError as exc:
                self.stats.failed += 1
                _logger.warning("Error sending %s for tracker %d: %s", kind.value, record.tracker_id, exc)
                continue
            self.stats.sent += 1
            sent += 1
        return sent

    def _should_send(self, vector: Vector3, present: bool) -> bool:
        if self._skip_zero_vectors:
            return vector != ZERO_VECTOR
        return present

    async def _run(self) -> None:
        while True:
            record = await self._queue.get()
            try:
                await self.emit(record)
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.exception("Failed to forward tracker %d", record.tracker_id)
            finally:
                self._queue.task_done()
