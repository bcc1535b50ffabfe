"""Relay configuration for trackrelay."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from trackrelay._constants import (
    DEFAULT_DESTINATION_HOST,
    DEFAULT_DESTINATION_PORT,
    DEFAULT_INVERSION_THRESHOLD,
    DEFAULT_LISTEN_HOST,
    DEFAULT_LISTEN_PORT,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_SHUTDOWN_TIMEOUT,
    DEFAULT_STATUS_HOST,
    DEFAULT_STATUS_PORT,
)
from trackrelay.exceptions import RelayConfigError


class OverflowPolicy(StrEnum):
    """What the update worker does when the forwarding queue is full."""

    BLOCK = "block"
    DROP_NEWEST = "drop_newest"
    DROP_OLDEST = "drop_oldest"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _check_port(name: str, value: int, *, allow_zero: bool) -> None:
    low = 0 if allow_zero else 1
    if not low <= value <= 65535:
        raise RelayConfigError(f"{name} must be between {low} and 65535, got {value}")


@dataclasses.dataclass(frozen=True)
class RelayConfig:
    """Relay configuration.

    Parameters
    ----------
    listen_host : str
        Address the inbound OSC listener binds to.
    listen_port : int
        UDP port of the inbound OSC listener. ``0`` picks a free port.
    destination_host : str
        Host that forwarded OSC messages are sent to.
    destination_port : int
        UDP port that forwarded OSC messages are sent to.
    inversion_threshold : float
        Per-axis rotation delta (degrees) above which a new rotation is
        treated as flipped and corrected.
    update_queue_size : int
        Capacity of the ingestion queue feeding the update worker.
    forward_queue_size : int
        Capacity of the forwarding queue feeding the emitter.
    overflow_policy : OverflowPolicy
        Behaviour when the forwarding queue is full. ``block`` stalls the
        update worker until the emitter catches up.
    skip_zero_vectors : bool
        Do not forward a field whose vector is exactly zero. When ``False``
        the record's presence flags decide instead.
    status_enabled : bool
        Serve the read-only HTTP status view.
    status_host : str
        Bind address of the status view.
    status_port : int
        Port of the status view.
    shutdown_timeout : float
        Seconds each queue may take to drain on shutdown before pending
        items are discarded.
    """

    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = DEFAULT_LISTEN_PORT
    destination_host: str = DEFAULT_DESTINATION_HOST
    destination_port: int = DEFAULT_DESTINATION_PORT
    inversion_threshold: float = DEFAULT_INVERSION_THRESHOLD
    update_queue_size: int = DEFAULT_QUEUE_SIZE
    forward_queue_size: int = DEFAULT_QUEUE_SIZE
    overflow_policy: OverflowPolicy = OverflowPolicy.BLOCK
    skip_zero_vectors: bool = True
    status_enabled: bool = False
    status_host: str = DEFAULT_STATUS_HOST
    status_port: int = DEFAULT_STATUS_PORT
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT

    def __post_init__(self) -> None:
        _check_port("listen_port", self.listen_port, allow_zero=True)
        _check_port("destination_port", self.destination_port, allow_zero=False)
        _check_port("status_port", self.status_port, allow_zero=True)
        if not self.destination_host.strip():
            raise RelayConfigError("destination_host must be non-empty")
        if not 0 < self.inversion_threshold <= 360:
            raise RelayConfigError(
                f"inversion_threshold must be in (0, 360] degrees, got {self.inversion_threshold}"
            )
        if self.update_queue_size <= 0 or self.forward_queue_size <= 0:
            raise RelayConfigError("queue sizes must be positive")
        if self.shutdown_timeout < 0:
            raise RelayConfigError(f"shutdown_timeout must be >= 0, got {self.shutdown_timeout}")
        try:
            policy = OverflowPolicy(self.overflow_policy)
        except ValueError as exc:
            raise RelayConfigError(f"unknown overflow_policy: {self.overflow_policy!r}") from exc
        # Plain strings are accepted and normalized to the enum.
        object.__setattr__(self, "overflow_policy", policy)

    @classmethod
    def from_env(cls, **overrides: Any) -> RelayConfig:
        """Create configuration from environment variables.

        Reads optional ``TRACKRELAY_*`` variables. Explicit keyword
        arguments override environment values; ``None`` overrides are
        ignored so CLI flags that were not given fall through.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        RelayConfig
            Populated configuration.
        """
        env = os.environ
        overrides = {key: value for key, value in overrides.items() if value is not None}

        _ENV_STR_MAP = {
            "TRACKRELAY_LISTEN_HOST": "listen_host",
            "TRACKRELAY_DESTINATION_HOST": "destination_host",
            "TRACKRELAY_OVERFLOW_POLICY": "overflow_policy",
            "TRACKRELAY_STATUS_HOST": "status_host",
        }
        _ENV_INT_MAP = {
            "TRACKRELAY_LISTEN_PORT": "listen_port",
            "TRACKRELAY_DESTINATION_PORT": "destination_port",
            "TRACKRELAY_UPDATE_QUEUE_SIZE": "update_queue_size",
            "TRACKRELAY_FORWARD_QUEUE_SIZE": "forward_queue_size",
            "TRACKRELAY_STATUS_PORT": "status_port",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip()

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = int(val)
            except ValueError as exc:
                raise RelayConfigError(f"{env_key} must be an integer, got {val!r}") from exc

        timeout_env = env.get("TRACKRELAY_SHUTDOWN_TIMEOUT")
        if timeout_env is not None and "shutdown_timeout" not in overrides:
            try:
                config_kwargs["shutdown_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise RelayConfigError(
                    f"TRACKRELAY_SHUTDOWN_TIMEOUT must be a number, got {timeout_env!r}"
                ) from exc

        threshold_env = env.get("TRACKRELAY_INVERSION_THRESHOLD")
        if threshold_env is not None and "inversion_threshold" not in overrides:
            try:
                config_kwargs["inversion_threshold"] = float(threshold_env)
            except ValueError as exc:
                raise RelayConfigError(
                    f"TRACKRELAY_INVERSION_THRESHOLD must be a number, got {threshold_env!r}"
                ) from exc

        if "skip_zero_vectors" not in overrides:
            config_kwargs["skip_zero_vectors"] = _env_bool(env.get("TRACKRELAY_SKIP_ZERO_VECTORS"), True)

        if "status_enabled" not in overrides:
            config_kwargs["status_enabled"] = _env_bool(env.get("TRACKRELAY_STATUS_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
