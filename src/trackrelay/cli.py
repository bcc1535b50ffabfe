"""Command-line entry point for the tracker relay."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Sequence

from trackrelay.config import OverflowPolicy, RelayConfig
from trackrelay.exceptions import TrackRelayError
from trackrelay.relay import TrackerRelay

_LOG = logging.getLogger("trackrelay")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="trackrelay",
        description="Relay OSC tracker poses, correcting orientation flips before forwarding.",
    )
    parser.add_argument("--listen-host", help="address to receive OSC on (env TRACKRELAY_LISTEN_HOST)")
    parser.add_argument("--listen-port", type=int, help="UDP port to receive OSC on (default 9009)")
    parser.add_argument("--destination-host", help="host to forward OSC to (default 127.0.0.1)")
    parser.add_argument("--destination-port", type=int, help="UDP port to forward OSC to (default 9010)")
    parser.add_argument(
        "--inversion-threshold",
        type=float,
        help="per-axis rotation jump in degrees treated as a flip (default 170)",
    )
    parser.add_argument("--update-queue-size", type=int, help="ingestion queue capacity (default 10000)")
    parser.add_argument("--forward-queue-size", type=int, help="forwarding queue capacity (default 10000)")
    parser.add_argument(
        "--overflow-policy",
        choices=[policy.value for policy in OverflowPolicy],
        help="what to do when the forwarding queue is full (default block)",
    )
    parser.add_argument(
        "--send-zero-vectors",
        dest="skip_zero_vectors",
        action="store_false",
        default=None,
        help="forward fields that are exactly zero once they have been set",
    )
    parser.add_argument(
        "--status",
        dest="status_enabled",
        action="store_true",
        default=None,
        help="serve the read-only HTTP status view",
    )
    parser.add_argument("--status-host", help="status view bind address (default 127.0.0.1)")
    parser.add_argument("--status-port", type=int, help="status view port (default 8080)")
    parser.add_argument("--shutdown-timeout", type=float, help="seconds allowed per queue drain on exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> RelayConfig:
    """Map parsed CLI flags onto :meth:`RelayConfig.from_env` overrides."""
    return RelayConfig.from_env(
        listen_host=args.listen_host,
        listen_port=args.listen_port,
        destination_host=args.destination_host,
        destination_port=args.destination_port,
        inversion_threshold=args.inversion_threshold,
        update_queue_size=args.update_queue_size,
        forward_queue_size=args.forward_queue_size,
        overflow_policy=args.overflow_policy,
        skip_zero_vectors=args.skip_zero_vectors,
        status_enabled=args.status_enabled,
        status_host=args.status_host,
        status_port=args.status_port,
        shutdown_timeout=args.shutdown_timeout,
    )


async def _run(config: RelayConfig) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on Windows event loops.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop.set)

    async with TrackerRelay(config) as relay:
        serve = asyncio.create_task(relay.serve_forever())
        stopped = asyncio.create_task(stop.wait())
        await asyncio.wait({serve, stopped}, return_when=asyncio.FIRST_COMPLETED)
        for task in (serve, stopped):
            task.cancel()
        await asyncio.gather(serve, stopped, return_exceptions=True)
        _LOG.info("Shutting down")


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
    except TrackRelayError as exc:
        print(f"[trackrelay] Invalid configuration: {exc}", file=sys.stderr)
        return 2

    try:
        asyncio.run(_run(config))
    except TrackRelayError as exc:
        _LOG.error("Relay failed: %s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    return 0
