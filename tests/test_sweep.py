from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest

from conftest import ManualClock
from tabsync.models.tab import Tab
from tabsync.state.store import DeviceRegistry
from tabsync.sweep import StalenessSweep

TIMEOUT = timedelta(minutes=5)


def _registry(clock: ManualClock) -> DeviceRegistry:
    return DeviceRegistry(clock=clock)


def _touch(registry: DeviceRegistry, device_id: str) -> None:
    registry.upsert(device_id, [Tab(title="A", url="https://a.com")])


@pytest.mark.asyncio
async def test_idle_device_removed_on_next_tick(clock: ManualClock) -> None:
    registry = _registry(clock)
    _touch(registry, "idle")
    sweep = StalenessSweep(registry, timeout=TIMEOUT)

    clock.advance(TIMEOUT.total_seconds() + 1)
    removed = await sweep.run_once()

    assert removed == ["idle"]
    assert "idle" not in registry


@pytest.mark.asyncio
async def test_device_updated_before_boundary_survives(clock: ManualClock) -> None:
    registry = _registry(clock)
    _touch(registry, "busy")
    clock.advance(TIMEOUT.total_seconds() - 1)
    _touch(registry, "busy")
    sweep = StalenessSweep(registry, timeout=TIMEOUT)

    clock.advance(TIMEOUT.total_seconds() - 1)
    assert await sweep.run_once() == []
    assert "busy" in registry


@pytest.mark.asyncio
async def test_on_evict_receives_removed_ids(clock: ManualClock) -> None:
    registry = _registry(clock)
    _touch(registry, "a")
    _touch(registry, "b")
    notified: list[list[str]] = []

    async def on_evict(removed: list[str]) -> None:
        notified.append(removed)

    sweep = StalenessSweep(registry, timeout=TIMEOUT, on_evict=on_evict)
    await sweep.run_once()
    clock.advance(TIMEOUT.total_seconds() + 1)
    await sweep.run_once()

    assert notified == [["a", "b"]]


@pytest.mark.asyncio
async def test_background_task_sweeps_on_interval(clock: ManualClock) -> None:
    registry = _registry(clock)
    _touch(registry, "idle")
    sweep = StalenessSweep(registry, timeout=TIMEOUT, interval=0.01)
    clock.advance(TIMEOUT.total_seconds() + 1)

    sweep.start()
    assert sweep.is_running
    for _ in range(50):
        if "idle" not in registry:
            break
        await asyncio.sleep(0.01)
    await sweep.stop()

    assert "idle" not in registry
    assert not sweep.is_running


@pytest.mark.asyncio
async def test_failing_tick_is_logged_and_loop_continues(
    clock: ManualClock, caplog: pytest.LogCaptureFixture
) -> None:
    class _FlakyRegistry(DeviceRegistry):
        def __init__(self) -> None:
            super().__init__(clock=clock)
            self.calls = 0

        def evict_stale(self, timeout: timedelta) -> list[str]:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("boom")
            return super().evict_stale(timeout)

    registry = _FlakyRegistry()
    sweep = StalenessSweep(registry, timeout=TIMEOUT, interval=0.01)

    with caplog.at_level(logging.ERROR, logger="tabsync.sweep"):
        sweep.start()
        for _ in range(50):
            if registry.calls >= 2:
                break
            await asyncio.sleep(0.01)
        await sweep.stop()

    assert registry.calls >= 2
    assert any("Staleness sweep failed" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(clock: ManualClock) -> None:
    await StalenessSweep(_registry(clock)).stop()
