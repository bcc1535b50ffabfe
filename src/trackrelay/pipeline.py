"""Update/forward pipeline.

Owns:
- the bounded ingestion queue fed by the listener (or any other producer)
- the single update worker, which is the only writer of the store
- the bounded forwarding queue consumed by :class:`trackrelay.emitter.ForwardEmitter`
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from pydantic import BaseModel, ConfigDict

from trackrelay._constants import DEFAULT_QUEUE_SIZE, DROP_LOG_INTERVAL
from trackrelay.config import OverflowPolicy
from trackrelay.exceptions import PipelineClosedError, QueueFullError
from trackrelay.models.tracker import TrackerRecord, TrackerUpdate
from trackrelay.state.store import TrackerStore

_logger = logging.getLogger(__name__)


class PipelineStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    received: int = 0
    applied: int = 0
    dropped: int = 0


class TrackerPipeline:
    """Serializes every store mutation through one worker task.

    Updates are applied and forwarded strictly in submission order. With
    the default ``block`` policy a full forwarding queue stalls the worker,
    which in turn fills the ingestion queue and stalls producers.
    """

    def __init__(
        self,
        store: TrackerStore,
        *,
        update_queue_size: int = DEFAULT_QUEUE_SIZE,
        forward_queue_size: int = DEFAULT_QUEUE_SIZE,
        overflow_policy: OverflowPolicy = OverflowPolicy.BLOCK,
    ) -> None:
        self._store = store
        self._overflow_policy = OverflowPolicy(overflow_policy)
        self._updates: asyncio.Queue[TrackerUpdate] = asyncio.Queue(maxsize=update_queue_size)
        self._forward: asyncio.Queue[TrackerRecord] = asyncio.Queue(maxsize=forward_queue_size)
        self._worker: asyncio.Task[None] | None = None
        self._closed = False
        self.stats = PipelineStats()

    @property
    def forward_queue(self) -> asyncio.Queue[TrackerRecord]:
        """Queue of merged records awaiting transmission."""
        return self._forward

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Number of updates waiting for the worker."""
        return self._updates.qsize()

    def start(self) -> None:
        """Start the update worker on the running loop."""
        if self._closed:
            raise PipelineClosedError("pipeline has been stopped")
        if self.is_running:
            return
        self._worker = asyncio.get_running_loop().create_task(self._run(), name="trackrelay-update-worker")

    async def submit(self, update: TrackerUpdate) -> None:
        """Enqueue *update*, waiting while the ingestion queue is full."""
        if self._closed:
            raise PipelineClosedError("pipeline is shutting down")
        await self._updates.put(update)
        self.stats.received += 1

    def submit_nowait(self, update: TrackerUpdate) -> None:
        """Enqueue *update* or raise :class:`QueueFullError` immediately."""
        if self._closed:
            raise PipelineClosedError("pipeline is shutting down")
        try:
            self._updates.put_nowait(update)
        except asyncio.QueueFull as exc:
            raise QueueFullError(f"ingestion queue full ({self._updates.maxsize} pending)") from exc
        self.stats.received += 1

    async def stop(self, *, drain: bool = True, timeout: float | None = None) -> None:
        """Stop accepting updates and shut the worker down.

        With *drain*, every update already queued is applied and forwarded
        before the worker is cancelled. *timeout* bounds the drain; whatever
        is still pending afterwards is discarded.
        """
        self._closed = True
        worker = self._worker
        if worker is None:
            return

        if drain and not worker.done():
            try:
                await asyncio.wait_for(self._updates.join(), timeout)
            except TimeoutError:
                _logger.warning("Pipeline drain timed out with %d updates pending", self._updates.qsize())

        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker
        self._worker = None

        discarded = 0
        while not self._updates.empty():
            self._updates.get_nowait()
            self._updates.task_done()
            discarded += 1
        if discarded:
            _logger.info("Discarded %d pending updates on shutdown", discarded)

    async def _run(self) -> None:
        while True:
            update = await self._updates.get()
            try:
                record = self._store.upsert(update)
                self.stats.applied += 1
                await self._forward_record(record)
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.exception("Failed to apply update for tracker %d", update.tracker_id)
            finally:
                self._updates.task_done()

    async def _forward_record(self, record: TrackerRecord) -> None:
        if self._overflow_policy is OverflowPolicy.BLOCK:
            await self._forward.put(record)
            return

        if self._overflow_policy is OverflowPolicy.DROP_NEWEST:
            try:
                self._forward.put_nowait(record)
            except asyncio.QueueFull:
                self._record_drop()
            return

        # DROP_OLDEST: evict from the head until the new record fits.
        while True:
            try:
                self._forward.put_nowait(record)
                return
            except asyncio.QueueFull:
                pass
            try:
                self._forward.get_nowait()
            except asyncio.QueueEmpty:
                continue
            self._forward.task_done()
            self._record_drop()

    def _record_drop(self) -> None:
        self.stats.dropped += 1
        if self.stats.dropped % DROP_LOG_INTERVAL == 1:
            _logger.warning(
                "Forwarding queue full (%d); dropped %d records so far (policy=%s)",
                self._forward.maxsize,
                self.stats.dropped,
                self._overflow_policy.value,
            )
