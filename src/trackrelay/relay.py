"""High-level async relay wiring listener, pipeline, store and emitter."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from typing import Any

from trackrelay._constants import ADDRESS_ROOT
from trackrelay._listener import OscUdpListener
from trackrelay._transport import OscTransport, UdpOscTransport
from trackrelay.config import RelayConfig
from trackrelay.emitter import ForwardEmitter
from trackrelay.ingestion.osc import translate_message
from trackrelay.models.tracker import TrackerRecord
from trackrelay.pipeline import TrackerPipeline
from trackrelay.state.store import TrackerStore
from trackrelay.status import StatusServer, create_status_app

_logger = logging.getLogger(__name__)


class TrackerRelay:
    """Relays tracker poses from an inbound OSC feed to an outbound one.

    Usage::

        async with TrackerRelay(RelayConfig.from_env()) as relay:
            await relay.serve_forever()

    Leaving the context stops the listener first, then drains the pipeline
    and the emitter (bounded by ``config.shutdown_timeout``).
    """

    def __init__(
        self,
        config: RelayConfig,
        *,
        transport: OscTransport | None = None,
    ) -> None:
        self._config = config
        self._store = TrackerStore(inversion_threshold=config.inversion_threshold)
        self._pipeline = TrackerPipeline(
            self._store,
            update_queue_size=config.update_queue_size,
            forward_queue_size=config.forward_queue_size,
            overflow_policy=config.overflow_policy,
        )
        self._external_transport = transport is not None
        self._transport = transport
        self._emitter: ForwardEmitter | None = None
        self._listener = OscUdpListener(config.listen_host, config.listen_port, self.handle_message)
        self._listener_task: asyncio.Task[None] | None = None
        self._status: StatusServer | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TrackerRelay:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._transport is None:
            self._transport = UdpOscTransport(self._config.destination_host, self._config.destination_port)
        try:
            self._listener.bind()
            self._emitter = ForwardEmitter(
                self._pipeline.forward_queue,
                self._transport,
                skip_zero_vectors=self._config.skip_zero_vectors,
            )
            self._pipeline.start()
            self._emitter.start()

            if self._config.status_enabled:
                self._status = StatusServer(
                    create_status_app(self._store, self.stats),
                    self._config.status_host,
                    self._config.status_port,
                )
                await self._status.start()
        except BaseException:
            await self.close()
            raise

        self._listener_task = asyncio.get_running_loop().create_task(
            self._listener.serve(),
            name="trackrelay-listener",
        )
        host, port = self._listener.address
        _logger.info(
            "Starting listener on %s:%d, forwarding to %s:%d",
            host,
            port,
            self._config.destination_host,
            self._config.destination_port,
        )

    async def close(self) -> None:
        """Stop receiving, then drain and stop both workers."""
        listener_task = self._listener_task
        self._listener_task = None
        if listener_task is not None:
            listener_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await listener_task
        self._listener.close()

        if self._status is not None:
            await self._status.stop()
            self._status = None

        timeout = self._config.shutdown_timeout
        await self._pipeline.stop(drain=True, timeout=timeout)
        if self._emitter is not None:
            await self._emitter.stop(drain=True, timeout=timeout)

        if self._transport is not None and not self._external_transport:
            self._transport.close()
            self._transport = None
        _logger.info("Relay stopped")

    async def serve_forever(self) -> None:
        """Wait until the listener stops or the calling task is cancelled."""
        if self._listener_task is None:
            raise RuntimeError("Relay not started; use 'async with TrackerRelay(...)'")
        await asyncio.shield(self._listener_task)

    # ------------------------------------------------------------------
    # Ingestion and reads
    # ------------------------------------------------------------------

    async def handle_message(self, address: str, arguments: Sequence[Any]) -> bool:
        """Translate one decoded OSC message and queue it; return whether accepted."""
        if ADDRESS_ROOT not in address:
            return False
        update = translate_message(address, arguments)
        if update is None:
            return False
        await self._pipeline.submit(update)
        return True

    def get_tracker(self, tracker_id: int) -> TrackerRecord | None:
        return self._store.get(tracker_id)

    def stats(self) -> dict[str, Any]:
        return {
            "trackers": len(self._store),
            "pending": self._pipeline.pending(),
            "pipeline": self._pipeline.stats.model_dump(),
            "emitter": self._emitter.stats.model_dump() if self._emitter is not None else {},
        }

    @property
    def config(self) -> RelayConfig:
        return self._config

    @property
    def store(self) -> TrackerStore:
        return self._store

    @property
    def pipeline(self) -> TrackerPipeline:
        return self._pipeline

    @property
    def emitter(self) -> ForwardEmitter | None:
        return self._emitter

    @property
    def listen_address(self) -> tuple[str, int]:
        return self._listener.address
