"""trackrelay - Async OSC relay for tracker poses with orientation flip correction."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("trackrelay")
except PackageNotFoundError:
    __version__ = "0+local"
from trackrelay.config import OverflowPolicy, RelayConfig
from trackrelay.emitter import ForwardEmitter
from trackrelay.exceptions import (
    PipelineClosedError,
    PipelineError,
    QueueFullError,
    RelayConfigError,
    RelayTransportError,
    TrackRelayError,
)
from trackrelay.ingestion.osc import translate_message
from trackrelay.models import PayloadKind, TrackerRecord, TrackerUpdate, Vector3
from trackrelay.pipeline import TrackerPipeline
from trackrelay.relay import TrackerRelay
from trackrelay.state.store import TrackerStore

__all__ = [
    "__version__",
    "ForwardEmitter",
    "OverflowPolicy",
    "PayloadKind",
    "PipelineClosedError",
    "PipelineError",
    "QueueFullError",
    "RelayConfig",
    "RelayConfigError",
    "RelayTransportError",
    "TrackRelayError",
    "TrackerPipeline",
    "TrackerRecord",
    "TrackerRelay",
    "TrackerStore",
    "TrackerUpdate",
    "Vector3",
    "translate_message",
]
