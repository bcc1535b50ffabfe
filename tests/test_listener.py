from __future__ import annotations

import asyncio
import contextlib
import socket
from collections.abc import Sequence
from typing import Any

import pytest
from pythonosc.osc_bundle_builder import IMMEDIATELY, OscBundleBuilder
from pythonosc.osc_message_builder import OscMessageBuilder

from trackrelay._listener import OscUdpListener
from trackrelay.exceptions import RelayTransportError


def _message(address: str, *values: float) -> Any:
    builder = OscMessageBuilder(address=address)
    for value in values:
        builder.add_arg(value, OscMessageBuilder.ARG_TYPE_FLOAT)
    return builder.build()


class _Recorder:
    def __init__(self) -> None:
        self.messages: list[tuple[str, list[Any]]] = []

    async def __call__(self, address: str, arguments: Sequence[Any]) -> None:
        self.messages.append((address, list(arguments)))


@pytest.mark.asyncio
async def test_handle_datagram_dispatches_single_message() -> None:
    recorder = _Recorder()
    listener = OscUdpListener("127.0.0.1", 0, recorder)

    count = await listener.handle_datagram(_message("/tracking/trackers/1/position", 1.0, 2.0, 3.0).dgram)

    assert count == 1
    assert recorder.messages == [("/tracking/trackers/1/position", [1.0, 2.0, 3.0])]


@pytest.mark.asyncio
async def test_handle_datagram_flattens_bundles() -> None:
    recorder = _Recorder()
    listener = OscUdpListener("127.0.0.1", 0, recorder)
    bundle = OscBundleBuilder(IMMEDIATELY)
    bundle.add_content(_message("/tracking/trackers/1/position", 1.0, 0.0, 0.0))
    bundle.add_content(_message("/tracking/trackers/1/rotation", 0.0, 90.0, 0.0))

    count = await listener.handle_datagram(bundle.build().dgram)

    assert count == 2
    assert [address for address, _ in recorder.messages] == [
        "/tracking/trackers/1/position",
        "/tracking/trackers/1/rotation",
    ]


@pytest.mark.asyncio
async def test_garbage_datagram_is_dropped() -> None:
    recorder = _Recorder()
    listener = OscUdpListener("127.0.0.1", 0, recorder)

    assert await listener.handle_datagram(b"not osc at all") == 0
    assert recorder.messages == []


@pytest.mark.asyncio
async def test_serve_receives_over_udp() -> None:
    recorder = _Recorder()
    listener = OscUdpListener("127.0.0.1", 0, recorder)
    listener.bind()
    task = asyncio.create_task(listener.serve())
    sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sender.sendto(_message("/tracking/trackers/9/rotation", 1.0, 2.0, 3.0).dgram, listener.address)
        for _ in range(100):
            if recorder.messages:
                break
            await asyncio.sleep(0.01)
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        sender.close()
        listener.close()

    assert recorder.messages == [("/tracking/trackers/9/rotation", [1.0, 2.0, 3.0])]


def test_bind_conflict_raises_transport_error() -> None:
    holder = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    holder.bind(("127.0.0.1", 0))
    try:
        # holder lacks SO_REUSEADDR, so the port cannot be shared.
        listener = OscUdpListener("127.0.0.1", holder.getsockname()[1], _Recorder())
        with pytest.raises(RelayTransportError):
            listener.bind()
    finally:
        holder.close()


def test_bind_returns_the_same_socket_when_already_bound() -> None:
    listener = OscUdpListener("127.0.0.1", 0, _Recorder())
    try:
        sock = listener.bind()

        assert listener.bind() is sock
        assert listener.address == sock.getsockname()[:2]
    finally:
        listener.close()
