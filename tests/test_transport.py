from __future__ import annotations

import asyncio
import socket
import struct

import pytest
from pythonosc.osc_message import OscMessage

from trackrelay._transport import UdpOscTransport, build_float_message
from trackrelay.exceptions import RelayTransportError


def test_build_float_message_uses_float32_tags() -> None:
    dgram = build_float_message("/tracking/trackers/1/position", [1, 2.5, -3.0])

    message = OscMessage(dgram)
    assert message.address == "/tracking/trackers/1/position"
    assert message.params == [1.0, 2.5, -3.0]
    assert b",fff\x00" in dgram
    assert dgram.endswith(struct.pack(">fff", 1.0, 2.5, -3.0))


@pytest.mark.asyncio
async def test_send_delivers_datagram_to_destination() -> None:
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    receiver.bind(("127.0.0.1", 0))
    receiver.setblocking(False)
    port = receiver.getsockname()[1]
    transport = UdpOscTransport("127.0.0.1", port)
    try:
        await transport.send("/tracking/trackers/7/rotation", (10.0, 20.0, 30.0))
        data = await asyncio.wait_for(asyncio.get_running_loop().sock_recv(receiver, 1024), timeout=1.0)
    finally:
        transport.close()
        receiver.close()

    message = OscMessage(data)
    assert message.address == "/tracking/trackers/7/rotation"
    assert message.params == [10.0, 20.0, 30.0]


@pytest.mark.asyncio
async def test_send_after_close_raises() -> None:
    transport = UdpOscTransport("127.0.0.1", 9010)
    transport.close()

    with pytest.raises(RelayTransportError):
        await transport.send("/tracking/trackers/1/position", (1.0, 1.0, 1.0))
