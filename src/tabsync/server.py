"""aiohttp surface of the sync server.

Two listeners share one registry and one broadcast hub:

* the HTTP listener (``config.port``) serves ``GET /devices``,
  ``POST /add``, ``GET /ip`` and, for convenience, the push channel at
  ``/ws``;
* the push listener (``config.ws_port``, ephemeral by default) serves the
  push channel at ``/``. Its bound port is advertised through ``GET /ip``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import socket
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any

from aiohttp import WSMsgType, web
from pydantic import ValidationError

from tabsync._constants import ERROR_ADD_FAILED, ERROR_MISSING_FIELDS
from tabsync._title import TitleLookup, TitleResolver
from tabsync.broadcast import BroadcastHub
from tabsync.config import TabSyncConfig
from tabsync.exceptions import TabSyncStartupError
from tabsync.ingestion import TabIngestor, parse_push_message
from tabsync.models.messages import AddTabRequest, AddTabResponse, DiscoveryInfo, ErrorResponse, TabUpdate
from tabsync.net import pick_advertise_ip
from tabsync.state.store import DeviceRegistry
from tabsync.sweep import StalenessSweep

_logger = logging.getLogger(__name__)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _apply_cors(headers: Any) -> None:
    for key, value in _CORS_HEADERS.items():
        headers.setdefault(key, value)


@web.middleware
async def cors_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Allow any origin; browser extensions call the API cross-origin."""
    if request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers:
        response: web.StreamResponse = web.Response(status=204)
    else:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            _apply_cors(exc.headers)
            raise
    if not response.prepared:
        _apply_cors(response.headers)
    return response


def _error(message: str, status: int) -> web.Response:
    return web.json_response(ErrorResponse(error=message).to_wire(), status=status)


def _bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if os.name != "nt":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


class SyncServer:
    """Owns the registry and wires ingestion, broadcast and sweep together.

    Usage::

        async with SyncServer(TabSyncConfig.from_env()) as server:
            print(server.url, server.ws_port)
            ...
    """

    def __init__(
        self,
        config: TabSyncConfig | None = None,
        *,
        registry: DeviceRegistry | None = None,
        titles: TitleLookup | None = None,
    ) -> None:
        self._config = config or TabSyncConfig()
        self.registry = registry if registry is not None else DeviceRegistry()
        self.hub = BroadcastHub()

        self._resolver: TitleResolver | None = None
        if titles is None:
            self._resolver = TitleResolver(timeout=self._config.title_timeout)
            titles = self._resolver

        self.ingestor = TabIngestor(self.registry, titles, on_change=self.broadcast)
        self.sweep = StalenessSweep(
            self.registry,
            timeout=self._config.device_timeout_delta,
            interval=self._config.sweep_interval,
            on_evict=self._on_evict if self._config.broadcast_on_sweep else None,
        )

        self._http_runner: web.AppRunner | None = None
        self._ws_runner: web.AppRunner | None = None
        self._http_port: int | None = None
        self._ws_port: int | None = None
        self._advertise_ip: str | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> TabSyncConfig:
        return self._config

    @property
    def http_port(self) -> int:
        return self._http_port if self._http_port is not None else self._config.port

    @property
    def ws_port(self) -> int:
        return self._ws_port if self._ws_port is not None else self._config.ws_port

    @property
    def advertise_ip(self) -> str:
        if self._advertise_ip is None:
            self._advertise_ip = pick_advertise_ip(self._config.advertise_ip)
        return self._advertise_ip

    @property
    def url(self) -> str:
        return f"http://{self.advertise_ip}:{self.http_port}"

    # ------------------------------------------------------------------
    # Broadcast triggers
    # ------------------------------------------------------------------

    async def broadcast(self) -> None:
        delivered = await self.hub.publish(self.registry.snapshot())
        _logger.debug("Snapshot pushed to %d subscriber(s)", delivered)

    async def _on_evict(self, _removed: list[str]) -> None:
        await self.broadcast()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def handle_devices(self, request: web.Request) -> web.Response:
        return web.json_response(self.registry.snapshot())

    async def handle_add(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _error(ERROR_MISSING_FIELDS, 400)
        if not isinstance(body, dict):
            return _error(ERROR_MISSING_FIELDS, 400)

        try:
            add_request = AddTabRequest.model_validate(body)
        except ValidationError:
            return _error(ERROR_MISSING_FIELDS, 400)

        try:
            result = await self.ingestor.add_tab(add_request)
        except Exception:
            _logger.exception("Error adding URL for device %s", add_request.device_id)
            return _error(ERROR_ADD_FAILED, 500)

        return web.json_response(AddTabResponse(title=result.title).to_wire())

    async def handle_ip(self, request: web.Request) -> web.Response:
        info = DiscoveryInfo(ip=self.advertise_ip, ws_port=self.ws_port)
        return web.json_response(info.to_wire())

    async def _apply_update(self, update: TabUpdate) -> None:
        try:
            await self.ingestor.apply_update(update)
        except Exception:
            _logger.exception("Failed to apply update from device %s", update.device_id)

    async def handle_push(self, request: web.Request) -> web.WebSocketResponse:
        """Serve one push connection.

        Each update runs as its own task so the read loop keeps answering
        control frames and later updates while titles are being fetched.
        Updates may therefore commit out of arrival order. Pending updates
        still commit after the client disconnects.
        """
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        subscriber_id = self.hub.subscribe(ws)
        pending: set[asyncio.Task[None]] = set()
        try:
            await self.hub.send_snapshot(ws, self.registry.snapshot())
            async for msg in ws:
                if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                    update = parse_push_message(msg.data)
                    if update is None:
                        continue
                    task = asyncio.create_task(self._apply_update(update))
                    pending.add(task)
                    task.add_done_callback(pending.discard)
                elif msg.type == WSMsgType.ERROR:
                    _logger.debug("Push channel %s closed with error: %s", subscriber_id, ws.exception())
        finally:
            self.hub.unsubscribe(subscriber_id)
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        return ws

    async def _handle_index(self, request: web.Request) -> web.FileResponse:
        assert self._config.static_dir is not None  # noqa: S101
        return web.FileResponse(Path(self._config.static_dir) / "index.html")

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    async def _background(self, _app: web.Application) -> AsyncIterator[None]:
        self.sweep.start()
        yield
        await self.sweep.stop()
        if self._resolver is not None:
            await self._resolver.close()

    async def _close_subscribers(self, _app: web.Application) -> None:
        await self.hub.close_all()

    def build_app(self) -> web.Application:
        """HTTP application: query/ingest endpoints plus ``/ws``."""
        app = web.Application(middlewares=[cors_middleware])
        app.router.add_get("/devices", self.handle_devices)
        app.router.add_post("/add", self.handle_add)
        app.router.add_get("/ip", self.handle_ip)
        app.router.add_get("/ws", self.handle_push)

        static_dir = self._config.static_dir
        if static_dir:
            root = Path(static_dir)
            if root.is_dir():
                if (root / "index.html").is_file():
                    app.router.add_get("/", self._handle_index)
                app.router.add_static("/", root)
            else:
                _logger.warning("Static directory %s does not exist; not serving it", static_dir)

        app.cleanup_ctx.append(self._background)
        app.on_shutdown.append(self._close_subscribers)
        return app

    def build_push_app(self) -> web.Application:
        """Push-only application served on the dedicated listener."""
        app = web.Application()
        app.router.add_get("/", self.handle_push)
        app.on_shutdown.append(self._close_subscribers)
        return app

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SyncServer:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def _serve(self, app: web.Application, port: int) -> tuple[web.AppRunner, int]:
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        try:
            sock = _bind_socket(self._config.host, port)
        except OSError as exc:
            await runner.cleanup()
            raise TabSyncStartupError(f"Cannot bind {self._config.host}:{port}: {exc}") from exc
        site = web.SockSite(runner, sock)
        await site.start()
        return runner, sock.getsockname()[1]

    async def start(self) -> None:
        """Bind both listeners and start the sweep.

        Raises :class:`TabSyncStartupError` when a port cannot be bound.
        """
        self._ws_runner, self._ws_port = await self._serve(self.build_push_app(), self._config.ws_port)
        try:
            self._http_runner, self._http_port = await self._serve(self.build_app(), self._config.port)
        except TabSyncStartupError:
            await self.stop()
            raise

        _logger.info("TabSync Local running at: %s", self.url)
        _logger.info("WebSocket on ws://%s:%d", self.advertise_ip, self.ws_port)

    async def stop(self) -> None:
        for runner in (self._ws_runner, self._http_runner):
            if runner is not None:
                await runner.cleanup()
        self._ws_runner = None
        self._http_runner = None
        self._ws_port = None
        self._http_port = None
