"""Custom exception hierarchy for trackrelay."""

from __future__ import annotations


class TrackRelayError(Exception):
    """Base exception for all trackrelay errors."""


class RelayConfigError(TrackRelayError):
    """Invalid or missing configuration."""


class RelayTransportError(TrackRelayError):
    """Socket-level failure sending or receiving OSC datagrams."""

    def __init__(
        self,
        message: str,
        *,
        host: str = "",
        port: int | None = None,
    ) -> None:
        self.host = host
        self.port = port
        super().__init__(message)


class PipelineError(TrackRelayError):
    """Update/forward pipeline failure."""


class PipelineClosedError(PipelineError):
    """Update submitted after the pipeline started shutting down."""


class QueueFullError(PipelineError):
    """Non-blocking submit found the ingestion queue full."""
