"""In-memory device registry.

This is the only component allowed to hold device state. It is fully
synchronous: the server runs on a single event loop, so no two calls can
interleave and no locking is needed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from tabsync.exceptions import TabSyncValidationError
from tabsync.models.tab import Tab
from tabsync.state.policy import advance_last_seen, is_stale

Snapshot = dict[str, list[dict[str, str]]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _require_device_id(device_id: str) -> str:
    if not isinstance(device_id, str) or not device_id:
        raise TabSyncValidationError("device_id must be a non-empty string")
    return device_id


class DeviceState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tabs: list[Tab] = Field(default_factory=list)
    last_seen: datetime

    def has_url(self, url: str) -> bool:
        return any(tab.url == url for tab in self.tabs)


class DeviceRegistry:
    """Authoritative mapping of device id to tab list and last activity.

    Only :meth:`upsert`, :meth:`append_tab`, :meth:`remove` and
    :meth:`evict_stale` mutate state. :meth:`snapshot` is what gets
    broadcast; ``last_seen`` never leaves the registry.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._devices: dict[str, DeviceState] = {}

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._devices))

    @property
    def device_ids(self) -> list[str]:
        return list(self._devices)

    def _touch(self, device_id: str) -> DeviceState:
        now = self._clock()
        state = self._devices.get(device_id)
        if state is None:
            state = DeviceState(last_seen=now)
            self._devices[device_id] = state
        else:
            state.last_seen = advance_last_seen(state.last_seen, now)
        return state

    def upsert(self, device_id: str, tabs: Iterable[Tab]) -> None:
        """Replace the whole tab list of *device_id* and refresh ``last_seen``.

        Tabs are stored in the given order. Callers dedupe by URL first;
        a repeated URL here keeps its first occurrence.
        """
        _require_device_id(device_id)
        seen: set[str] = set()
        accepted: list[Tab] = []
        for tab in tabs:
            if tab.url in seen:
                continue
            seen.add(tab.url)
            accepted.append(tab)
        state = self._touch(device_id)
        state.tabs = accepted

    def append_tab(self, device_id: str, tab: Tab) -> bool:
        """Append *tab* unless its URL is already known for *device_id*.

        The device is created when absent. Returns ``True`` when a tab was
        appended; a duplicate leaves the device (and ``last_seen``) as is.
        """
        _require_device_id(device_id)
        state = self._devices.get(device_id)
        if state is not None and state.has_url(tab.url):
            return False
        state = self._touch(device_id)
        state.tabs.append(tab)
        return True

    def remove(self, device_id: str) -> bool:
        return self._devices.pop(device_id, None) is not None

    def has_url(self, device_id: str, url: str) -> bool:
        state = self._devices.get(device_id)
        return state is not None and state.has_url(url)

    def tabs(self, device_id: str) -> list[Tab]:
        state = self._devices.get(device_id)
        return list(state.tabs) if state is not None else []

    def last_seen(self, device_id: str) -> datetime | None:
        state = self._devices.get(device_id)
        return state.last_seen if state is not None else None

    def evict_stale(self, timeout: timedelta) -> list[str]:
        """Remove every device idle for longer than *timeout*.

        Returns the evicted ids in registry order.
        """
        now = self._clock()
        expired = [
            device_id for device_id, state in self._devices.items() if is_stale(now, state.last_seen, timeout)
        ]
        for device_id in expired:
            del self._devices[device_id]
        return expired

    def snapshot(self) -> Snapshot:
        """Return ``{device_id: [{"title": ..., "url": ...}, ...]}``."""
        return {device_id: [tab.to_wire() for tab in state.tabs] for device_id, state in self._devices.items()}
