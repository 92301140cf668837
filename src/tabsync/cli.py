"""Command-line entry point: ``tabsync`` / ``python -m tabsync``.

stdout is reserved for the readiness marker a supervising process waits
for; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Sequence
from typing import Any, TextIO

from tabsync import __version__
from tabsync._constants import READY_MARKER
from tabsync.config import TabSyncConfig
from tabsync.exceptions import TabSyncConfigError, TabSyncStartupError
from tabsync.server import SyncServer

_logger = logging.getLogger("tabsync")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tabsync",
        description="Local-network browser tab sync server.",
    )
    parser.add_argument("--port", type=int, help="HTTP port (env: TABSYNC_PORT, default 3210)")
    parser.add_argument("--host", help="Bind address (env: TABSYNC_HOST, default 0.0.0.0)")
    parser.add_argument("--ws-port", type=int, help="Push-channel port, 0 for ephemeral (env: TABSYNC_WS_PORT)")
    parser.add_argument("--static-dir", help="Directory served at / (env: TABSYNC_STATIC_DIR)")
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        type=str.upper,
        help="Logging level (env: TABSYNC_LOG_LEVEL, default INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    mapping = {
        "port": args.port,
        "host": args.host,
        "ws_port": args.ws_port,
        "static_dir": args.static_dir,
        "log_level": args.log_level,
    }
    return {key: value for key, value in mapping.items() if value is not None}


def announce_ready(url: str, stream: TextIO | None = None) -> None:
    """Write the readiness marker line the supervisor is waiting for."""
    out = stream if stream is not None else sys.stdout
    out.write(f"{READY_MARKER}:{url}\n")
    out.flush()


async def serve(config: TabSyncConfig, *, stop_event: asyncio.Event | None = None) -> None:
    """Run the server until *stop_event* is set (or SIGINT/SIGTERM)."""
    stop = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)

    try:
        async with SyncServer(config) as server:
            announce_ready(server.url)
            if config.show_qr:
                _logger.info("Clients can discover this server at %s/ip", server.url)
            await stop.wait()
            _logger.info("Shutting down")
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = TabSyncConfig.from_env(**_overrides(args))
    except TabSyncConfigError as exc:
        print(f"tabsync: {exc}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        asyncio.run(serve(config))
    except TabSyncStartupError as exc:
        _logger.error("Server failed to start: %s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    return 0
