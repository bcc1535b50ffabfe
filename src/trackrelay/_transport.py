"""Outbound OSC transport over UDP."""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Sequence
from typing import Protocol

from pythonosc.osc_message_builder import BuildError, OscMessageBuilder

from trackrelay.exceptions import RelayTransportError

_logger = logging.getLogger(__name__)


class OscTransport(Protocol):
    """Structural transport interface used by the emitter.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`UdpOscTransport`) concrete.
    """

    async def send(self, address: str, values: Sequence[float]) -> None:
        ...

    def close(self) -> None:
        ...


def build_float_message(address: str, values: Sequence[float]) -> bytes:
    """Encode an OSC message whose arguments are all float32 (``f``) typed."""
    builder = OscMessageBuilder(address=address)
    for value in values:
        builder.add_arg(float(value), OscMessageBuilder.ARG_TYPE_FLOAT)
    return builder.build().dgram


class UdpOscTransport:
    """Best-effort OSC sender for a single destination.

    Every :meth:`send` is one datagram; delivery is never confirmed.
    """

    def __init__(self, host: str, port: int) -> None:
        self._host = host
        self._port = port
        try:
            infos = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
        except OSError as exc:
            raise RelayTransportError(f"Cannot resolve {host}:{port}: {exc}", host=host, port=port) from exc
        family, socktype, proto, _canonname, sockaddr = infos[0]
        self._sockaddr = sockaddr
        self._sock: socket.socket | None = socket.socket(family, socktype, proto)
        self._sock.setblocking(False)

    @property
    def destination(self) -> tuple[str, int]:
        return self._host, self._port

    async def send(self, address: str, values: Sequence[float]) -> None:
        """Send one OSC message, raising :class:`RelayTransportError` on failure."""
        sock = self._sock
        if sock is None:
            raise RelayTransportError("Transport is closed", host=self._host, port=self._port)
        try:
            dgram = build_float_message(address, values)
        except BuildError as exc:
            raise RelayTransportError(
                f"Cannot encode {address}: {exc}",
                host=self._host,
                port=self._port,
            ) from exc

        _logger.debug("OSC send %s %s -> %s:%d", address, tuple(values), self._host, self._port)
        try:
            await asyncio.get_running_loop().sock_sendto(sock, dgram, self._sockaddr)
        except OSError as exc:
            raise RelayTransportError(
                f"Send {address} to {self._host}:{self._port} failed: {exc}",
                host=self._host,
                port=self._port,
            ) from exc

    def close(self) -> None:
        sock = self._sock
        self._sock = None
        if sock is not None:
            sock.close()
