"""Launch the server as a child process and wait for its readiness marker.

This is the contract a desktop shell relies on: start ``python -m tabsync``,
read stdout until a ``SERVER_READY:<url>`` line shows up, and treat its
absence within the startup window as a failed launch.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from typing import Any

from tabsync._constants import READY_MARKER, STARTUP_TIMEOUT_S
from tabsync.exceptions import TabSyncStartupError

_logger = logging.getLogger(__name__)


def parse_ready_line(line: str) -> str | None:
    """Return the advertised URL if *line* carries the readiness marker."""
    index = line.find(READY_MARKER)
    if index < 0:
        return None
    rest = line[index + len(READY_MARKER) :].strip()
    return rest[1:].strip() if rest.startswith(":") else rest


def default_command() -> list[str]:
    return [sys.executable, "-m", "tabsync"]


class ServerSupervisor:
    """Start, watch and stop one server process.

    Usage::

        async with ServerSupervisor(env={"TABSYNC_PORT": "3210"}) as supervisor:
            print(supervisor.url)
    """

    def __init__(
        self,
        command: Sequence[str] | None = None,
        *,
        env: Mapping[str, str] | None = None,
        startup_timeout: float = STARTUP_TIMEOUT_S,
        stop_timeout: float = 5.0,
    ) -> None:
        self._command = list(command) if command is not None else default_command()
        self._env = {**os.environ, **(env or {})}
        self._startup_timeout = startup_timeout
        self._stop_timeout = stop_timeout
        self._process: asyncio.subprocess.Process | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self.url: str | None = None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def __aenter__(self) -> ServerSupervisor:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def _wait_for_marker(self, stream: asyncio.StreamReader) -> str:
        while True:
            raw = await stream.readline()
            if not raw:
                raise TabSyncStartupError("Server exited before signalling readiness")
            line = raw.decode("utf-8", errors="replace").rstrip()
            _logger.debug("server: %s", line)
            url = parse_ready_line(line)
            if url is not None:
                return url

    async def _drain(self, stream: asyncio.StreamReader) -> None:
        while True:
            raw = await stream.readline()
            if not raw:
                return
            _logger.info("server: %s", raw.decode("utf-8", errors="replace").rstrip())

    async def start(self) -> str:
        """Spawn the process and return the URL it announced.

        Raises :class:`TabSyncStartupError` if the marker does not appear
        within the startup window or the process exits first. The child is
        killed in both cases.
        """
        self._process = await asyncio.create_subprocess_exec(
            *self._command,
            stdout=asyncio.subprocess.PIPE,
            env=self._env,
        )
        assert self._process.stdout is not None  # noqa: S101
        try:
            self.url = await asyncio.wait_for(
                self._wait_for_marker(self._process.stdout),
                timeout=self._startup_timeout,
            )
        except (TimeoutError, TabSyncStartupError) as exc:
            await self._kill()
            returncode = self._process.returncode if self._process is not None else None
            if isinstance(exc, TimeoutError):
                raise TabSyncStartupError(
                    f"Server did not start within {self._startup_timeout:g}s",
                    returncode=returncode,
                ) from exc
            raise TabSyncStartupError(str(exc), returncode=returncode) from exc

        self._drain_task = asyncio.get_running_loop().create_task(self._drain(self._process.stdout))
        _logger.info("Server ready at %s", self.url)
        return self.url

    async def _kill(self) -> None:
        process = self._process
        if process is None:
            return
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
        await process.wait()

    async def stop(self) -> int | None:
        """Terminate the process, escalating to kill after ``stop_timeout``."""
        process = self._process
        if process is None:
            return None
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=self._stop_timeout)
            except TimeoutError:
                _logger.warning("Server did not exit after SIGTERM; killing it")
                await self._kill()

        if self._drain_task is not None:
            self._drain_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._drain_task
            self._drain_task = None

        self._process = None
        return process.returncode
