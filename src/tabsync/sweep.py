"""Periodic eviction of devices that stopped reporting."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta

from tabsync._constants import DEVICE_TIMEOUT_S, SWEEP_INTERVAL_S
from tabsync.state.store import DeviceRegistry

_logger = logging.getLogger(__name__)

EvictCallback = Callable[[list[str]], Awaitable[None]]


class StalenessSweep:
    """Background task removing devices idle for longer than the timeout.

    The sweep does not broadcast by itself; connected clients see the
    eviction with the next snapshot triggered by other activity. Pass
    ``on_evict`` to be notified right away instead.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        *,
        timeout: timedelta = timedelta(seconds=DEVICE_TIMEOUT_S),
        interval: float = SWEEP_INTERVAL_S,
        on_evict: EvictCallback | None = None,
    ) -> None:
        self._registry = registry
        self._timeout = timeout
        self._interval = interval
        self._on_evict = on_evict
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> list[str]:
        removed = self._registry.evict_stale(self._timeout)
        if removed:
            _logger.info("Cleaned %d inactive device(s).", len(removed))
            if self._on_evict is not None:
                await self._on_evict(removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except Exception:
                _logger.exception("Staleness sweep failed")

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="tabsync-sweep")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
