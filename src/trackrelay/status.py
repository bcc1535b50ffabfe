"""Read-only HTTP view of the tracker store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web

from trackrelay.exceptions import RelayTransportError
from trackrelay.state.store import TrackerStore

_logger = logging.getLogger(__name__)

STORE_KEY: web.AppKey[TrackerStore] = web.AppKey("store", TrackerStore)
STATS_KEY: web.AppKey[Callable[[], dict[str, Any]]] = web.AppKey("stats", Callable[[], dict[str, Any]])


async def _list_trackers(request: web.Request) -> web.Response:
    store = request.app[STORE_KEY]
    snapshot = store.snapshot()
    return web.json_response(
        {
            "trackers": [snapshot[tracker_id].model_dump(mode="json") for tracker_id in sorted(snapshot)],
            "stats": request.app[STATS_KEY](),
        }
    )


async def _get_tracker(request: web.Request) -> web.Response:
    raw_id = request.match_info["tracker_id"]
    if not raw_id.isascii() or not raw_id.isdigit():
        raise web.HTTPBadRequest(text=f"invalid tracker id: {raw_id}")
    record = request.app[STORE_KEY].get(int(raw_id))
    if record is None:
        raise web.HTTPNotFound(text=f"unknown tracker: {raw_id}")
    return web.json_response(record.model_dump(mode="json"))


def create_status_app(
    store: TrackerStore,
    stats: Callable[[], dict[str, Any]] = dict,
) -> web.Application:
    """Build the aiohttp application serving ``/trackers`` routes."""
    app = web.Application()
    app[STORE_KEY] = store
    app[STATS_KEY] = stats
    app.router.add_get("/trackers", _list_trackers)
    app.router.add_get("/trackers/{tracker_id}", _get_tracker)
    return app


class StatusServer:
    """Runs :func:`create_status_app` on a TCP site."""

    def __init__(self, app: web.Application, host: str, port: int) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    async def start(self) -> None:
        runner = web.AppRunner(self._app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        try:
            await site.start()
        except OSError as exc:
            await runner.cleanup()
            raise RelayTransportError(
                f"Cannot bind status view on {self._host}:{self._port}: {exc}",
                host=self._host,
                port=self._port,
            ) from exc
        self._runner = runner
        self._site = site
        _logger.info("Status view on http://%s:%d/trackers", self._host, self._port)

    async def stop(self) -> None:
        runner = self._runner
        self._runner = None
        self._site = None
        if runner is not None:
            await runner.cleanup()
