#!/usr/bin/env python3
"""Synthetic tracker pose sender for exercising a running relay.

Sends position and rotation OSC messages for a handful of trackers to the
relay's listen port. Every ``--flip-every`` frames the rotation of each
tracker is shifted by 180 degrees to imitate the orientation flip artifact,
so the relay's correction can be observed downstream.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import math
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from trackrelay._transport import UdpOscTransport  # noqa: E402
from trackrelay.emitter import tracker_address  # noqa: E402
from trackrelay.exceptions import RelayTransportError  # noqa: E402
from trackrelay.models.tracker import PayloadKind  # noqa: E402
from trackrelay.state.inversion import invert_orientation  # noqa: E402

_LOG = logging.getLogger("send_test_poses")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send synthetic OSC tracker poses.")
    parser.add_argument("--host", default="127.0.0.1", help="relay listen host")
    parser.add_argument("--port", type=int, default=9009, help="relay listen port")
    parser.add_argument("--trackers", type=int, default=3, help="number of trackers")
    parser.add_argument("--rate", type=float, default=60.0, help="frames per second")
    parser.add_argument("--frames", type=int, default=600, help="frames to send (0 = forever)")
    parser.add_argument("--flip-every", type=int, default=0, help="inject a flipped rotation every N frames")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser.parse_args()


async def _send(args: argparse.Namespace) -> int:
    transport = UdpOscTransport(args.host, args.port)
    interval = 1.0 / args.rate if args.rate > 0 else 0.0
    frame = 0
    failures = 0
    try:
        while args.frames == 0 or frame < args.frames:
            t = frame * interval
            flip = args.flip_every > 0 and frame > 0 and frame % args.flip_every == 0
            for tracker_id in range(args.trackers):
                phase = t + tracker_id
                position = (math.sin(phase), 1.0 + 0.1 * tracker_id, math.cos(phase))
                rotation = (10.0 * math.sin(phase), (40.0 * t) % 360.0 - 180.0, 0.0)
                if flip:
                    rotation = invert_orientation(rotation)
                try:
                    await transport.send(tracker_address(tracker_id, PayloadKind.POSITION), position)
                    await transport.send(tracker_address(tracker_id, PayloadKind.ROTATION), rotation)
                except RelayTransportError as exc:
                    failures += 1
                    _LOG.warning("Send failed: %s", exc)
            if flip:
                _LOG.info("frame %d: sent flipped rotations", frame)
            frame += 1
            await asyncio.sleep(interval)
    finally:
        transport.close()
    _LOG.info("Sent %d frames for %d trackers (%d failures)", frame, args.trackers, failures)
    return 0 if failures == 0 else 1


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_send(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(_main())
