"""Inbound OSC listener over UDP."""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from pythonosc.osc_packet import OscPacket, ParseError

from trackrelay._constants import MAX_DATAGRAM_SIZE
from trackrelay.exceptions import PipelineClosedError, RelayTransportError

MessageHandler = Callable[[str, Sequence[Any]], Awaitable[Any]]


class OscUdpListener:
    """Async UDP receive loop that decodes OSC packets.

    Datagrams are read one at a time and each decoded message is awaited
    through *on_message* before the next read, so a stalled consumer leaves
    datagrams in the kernel buffer instead of piling up in memory.
    """

    def __init__(
        self,
        host: str,
        port: int,
        on_message: MessageHandler,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._on_message = on_message
        self._logger = logger or logging.getLogger(__name__)
        self._sock: socket.socket | None = None

    @property
    def address(self) -> tuple[str, int]:
        """Bound ``(host, port)``; the port is resolved after :meth:`bind`."""
        if self._sock is None:
            return self._host, self._port
        sockname = self._sock.getsockname()
        return sockname[0], sockname[1]

    def bind(self) -> socket.socket:
        """Bind the listening socket and return it.

        Binding is idempotent. Failure here is fatal to the relay.
        """
        if self._sock is not None:
            return self._sock
        try:
            infos = socket.getaddrinfo(self._host, self._port, type=socket.SOCK_DGRAM, flags=socket.AI_PASSIVE)
            family, socktype, proto, _canonname, sockaddr = infos[0]
            sock = socket.socket(family, socktype, proto)
        except OSError as exc:
            raise RelayTransportError(
                f"Cannot create listener for {self._host}:{self._port}: {exc}",
                host=self._host,
                port=self._port,
            ) from exc
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setblocking(False)
            sock.bind(sockaddr)
        except OSError as exc:
            sock.close()
            raise RelayTransportError(
                f"Cannot bind {self._host}:{self._port}: {exc}",
                host=self._host,
                port=self._port,
            ) from exc
        self._sock = sock
        self._logger.debug("OSC listener bound to %s:%d", *self.address)
        return sock

    async def serve(self) -> None:
        """Receive and dispatch datagrams until cancelled or the pipeline closes."""
        sock = self.bind()
        loop = asyncio.get_running_loop()
        while True:
            try:
                data, peer = await loop.sock_recvfrom(sock, MAX_DATAGRAM_SIZE)
            except OSError as exc:
                # Keep the loop alive across transient socket errors.
                self._logger.debug("OSC receive error: %s", exc)
                continue
            try:
                await self.handle_datagram(data)
            except PipelineClosedError:
                self._logger.debug("Pipeline closed; listener stopping")
                return
            except Exception:
                self._logger.debug("OSC datagram from %s not handled", peer, exc_info=True)

    async def handle_datagram(self, data: bytes) -> int:
        """Decode one datagram and dispatch its messages; return how many."""
        try:
            packet = OscPacket(data)
        except ParseError as exc:
            self._logger.debug("Dropping undecodable OSC datagram (%d bytes): %s", len(data), exc)
            return 0
        for timed in packet.messages:
            message = timed.message
            await self._on_message(message.address, message.params)
        return len(packet.messages)

    def close(self) -> None:
        sock = self._sock
        self._sock = None
        if sock is not None:
            sock.close()
