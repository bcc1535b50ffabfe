from __future__ import annotations

import asyncio

import pytest

from trackrelay.config import OverflowPolicy
from trackrelay.exceptions import PipelineClosedError, QueueFullError
from trackrelay.models.tracker import TrackerRecord, TrackerUpdate
from trackrelay.pipeline import TrackerPipeline
from trackrelay.state.store import TrackerStore


def _position(tracker_id: int, x: float) -> TrackerUpdate:
    return TrackerUpdate(tracker_id=tracker_id, position=(x, 0.0, 0.0))


async def _drain_forward(queue: asyncio.Queue[TrackerRecord]) -> list[TrackerRecord]:
    records: list[TrackerRecord] = []
    while not queue.empty():
        records.append(queue.get_nowait())
        queue.task_done()
    return records


@pytest.mark.asyncio
async def test_updates_are_applied_and_forwarded_in_order() -> None:
    store = TrackerStore()
    pipeline = TrackerPipeline(store)
    pipeline.start()

    for x in (1.0, 2.0, 3.0):
        await pipeline.submit(_position(5, x))
    await pipeline.stop(drain=True)

    forwarded = await _drain_forward(pipeline.forward_queue)
    assert [record.position[0] for record in forwarded] == [1.0, 2.0, 3.0]
    stored = store.get(5)
    assert stored is not None
    assert stored.position == (3.0, 0.0, 0.0)
    assert pipeline.stats.received == 3
    assert pipeline.stats.applied == 3


@pytest.mark.asyncio
async def test_interleaved_trackers_keep_global_order() -> None:
    pipeline = TrackerPipeline(TrackerStore())
    pipeline.start()

    submitted = [_position(1, 1.0), _position(2, 1.0), _position(1, 2.0), _position(2, 2.0)]
    for update in submitted:
        await pipeline.submit(update)
    await pipeline.stop(drain=True)

    forwarded = await _drain_forward(pipeline.forward_queue)
    assert [(r.tracker_id, r.position[0]) for r in forwarded] == [(1, 1.0), (2, 1.0), (1, 2.0), (2, 2.0)]


@pytest.mark.asyncio
async def test_forwarded_record_reflects_correction() -> None:
    pipeline = TrackerPipeline(TrackerStore())
    pipeline.start()

    await pipeline.submit(TrackerUpdate(tracker_id=1, rotation=(0.0, 0.0, 0.0)))
    await pipeline.submit(TrackerUpdate(tracker_id=1, rotation=(179.0, 0.0, 0.0)))
    await pipeline.stop(drain=True)

    forwarded = await _drain_forward(pipeline.forward_queue)
    assert forwarded[-1].rotation == (-1.0, 180.0, 180.0)


@pytest.mark.asyncio
async def test_submit_nowait_raises_when_ingestion_queue_full() -> None:
    pipeline = TrackerPipeline(TrackerStore(), update_queue_size=1)

    pipeline.submit_nowait(_position(1, 1.0))
    with pytest.raises(QueueFullError):
        pipeline.submit_nowait(_position(1, 2.0))


@pytest.mark.asyncio
async def test_full_forward_queue_blocks_worker_and_producers() -> None:
    pipeline = TrackerPipeline(TrackerStore(), update_queue_size=1, forward_queue_size=1)
    pipeline.start()

    await pipeline.submit(_position(1, 1.0))  # forwarded, fills forward queue
    await pipeline.submit(_position(1, 2.0))  # worker blocks holding this one
    await asyncio.sleep(0.01)
    await pipeline.submit(_position(1, 3.0))  # sits in the ingestion queue

    blocked = asyncio.create_task(pipeline.submit(_position(1, 4.0)))
    await asyncio.sleep(0.01)
    assert not blocked.done()

    first = pipeline.forward_queue.get_nowait()
    pipeline.forward_queue.task_done()
    assert first.position[0] == 1.0

    await asyncio.wait_for(blocked, timeout=1.0)

    collected: list[float] = []
    while len(collected) < 3:
        record = await asyncio.wait_for(pipeline.forward_queue.get(), timeout=1.0)
        pipeline.forward_queue.task_done()
        collected.append(record.position[0])
    assert collected == [2.0, 3.0, 4.0]
    await pipeline.stop(drain=True)


@pytest.mark.asyncio
async def test_drop_newest_policy_keeps_worker_running() -> None:
    pipeline = TrackerPipeline(
        TrackerStore(),
        forward_queue_size=2,
        overflow_policy=OverflowPolicy.DROP_NEWEST,
    )
    pipeline.start()

    for x in (1.0, 2.0, 3.0, 4.0):
        await pipeline.submit(_position(1, x))
    await pipeline.stop(drain=True)

    forwarded = await _drain_forward(pipeline.forward_queue)
    assert [r.position[0] for r in forwarded] == [1.0, 2.0]
    assert pipeline.stats.dropped == 2
    stored_after = pipeline.stats.applied
    assert stored_after == 4


@pytest.mark.asyncio
async def test_drop_oldest_policy_keeps_latest_records() -> None:
    store = TrackerStore()
    pipeline = TrackerPipeline(
        store,
        forward_queue_size=2,
        overflow_policy="drop_oldest",
    )
    pipeline.start()

    for x in (1.0, 2.0, 3.0, 4.0):
        await pipeline.submit(_position(1, x))
    await pipeline.stop(drain=True)

    forwarded = await _drain_forward(pipeline.forward_queue)
    assert [r.position[0] for r in forwarded] == [3.0, 4.0]
    assert pipeline.stats.dropped == 2
    record = store.get(1)
    assert record is not None
    assert record.position[0] == 4.0


@pytest.mark.asyncio
async def test_submit_after_stop_raises() -> None:
    pipeline = TrackerPipeline(TrackerStore())
    pipeline.start()
    await pipeline.stop()

    with pytest.raises(PipelineClosedError):
        await pipeline.submit(_position(1, 1.0))
    with pytest.raises(PipelineClosedError):
        pipeline.start()


@pytest.mark.asyncio
async def test_stop_without_drain_discards_pending_updates() -> None:
    store = TrackerStore()
    pipeline = TrackerPipeline(store)
    for x in (1.0, 2.0, 3.0):
        pipeline.submit_nowait(_position(1, x))
    pipeline.start()

    await pipeline.stop(drain=False)

    assert pipeline.pending() == 0
    assert not pipeline.is_running


@pytest.mark.asyncio
async def test_drain_timeout_discards_what_cannot_be_forwarded() -> None:
    pipeline = TrackerPipeline(TrackerStore(), forward_queue_size=1)
    pipeline.start()
    for x in (1.0, 2.0, 3.0):
        await pipeline.submit(_position(1, x))

    await pipeline.stop(drain=True, timeout=0.05)

    assert pipeline.pending() == 0
    assert pipeline.forward_queue.qsize() == 1
