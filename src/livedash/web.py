"""aiohttp web surface for the dashboard.

Routes:
  - ``/``          rendered HTML for the current view
  - ``/api/view``  the current view as JSON
  - ``/ws``        the current state on connect, then one message per change
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from aiohttp import web

from livedash.app import DashboardApp
from livedash.config import DashboardConfig
from livedash.presentation.render import render_html

_logger = logging.getLogger(__name__)

DASHBOARD_KEY = web.AppKey("dashboard", DashboardApp)


async def index(request: web.Request) -> web.Response:
    dashboard = request.app[DASHBOARD_KEY]
    html = render_html(dashboard.view(), revision=dashboard.revision)
    return web.Response(text=html, content_type="text/html")


async def view_json(request: web.Request) -> web.Response:
    view = request.app[DASHBOARD_KEY].view()
    return web.json_response(view.model_dump(mode="json"))


def _state_message(dashboard: DashboardApp) -> dict[str, Any]:
    return {"state": dashboard.view().state.value, "revision": dashboard.revision}


async def _push_changes(ws: web.WebSocketResponse, dashboard: DashboardApp, changes: asyncio.Queue[None]) -> None:
    while not ws.closed:
        await changes.get()
        await ws.send_json(_state_message(dashboard))


async def live_updates(request: web.Request) -> web.WebSocketResponse:
    dashboard = request.app[DASHBOARD_KEY]
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    # Bursts of changes collapse into one pending notification.
    changes: asyncio.Queue[None] = asyncio.Queue(maxsize=1)

    def on_change() -> None:
        with contextlib.suppress(asyncio.QueueFull):
            changes.put_nowait(None)

    remove = dashboard.add_listener(on_change)
    sender: asyncio.Task[None] | None = None
    try:
        # Changes between rendering the page and connecting would otherwise be lost.
        await ws.send_json(_state_message(dashboard))
        sender = asyncio.create_task(_push_changes(ws, dashboard, changes))
        async for _msg in ws:
            pass
    finally:
        remove()
        if sender is not None:
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError, ConnectionResetError):
                await sender
    return ws


async def _start_dashboard(app: web.Application) -> None:
    await app[DASHBOARD_KEY].start()


async def _close_dashboard(app: web.Application) -> None:
    await app[DASHBOARD_KEY].close()


def create_app(config: DashboardConfig, **dashboard_kwargs: Any) -> web.Application:
    """Build the web application; *dashboard_kwargs* go to :class:`DashboardApp`."""
    app = web.Application()
    app[DASHBOARD_KEY] = DashboardApp(config, **dashboard_kwargs)
    app.router.add_get("/", index)
    app.router.add_get("/api/view", view_json)
    app.router.add_get("/ws", live_updates)
    app.on_startup.append(_start_dashboard)
    app.on_cleanup.append(_close_dashboard)
    return app


def run(config: DashboardConfig, *, host: str = "127.0.0.1", port: int = 8080) -> None:
    """Serve the dashboard until interrupted."""
    _logger.info("Serving dashboard for %s on http://%s:%s", config.document_path, host, port)
    web.run_app(create_app(config), host=host, port=port)
