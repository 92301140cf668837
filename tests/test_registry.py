from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import ManualClock
from tabsync.exceptions import TabSyncValidationError
from tabsync.models.tab import Tab
from tabsync.state.store import DeviceRegistry


def _tab(url: str, title: str | None = None) -> Tab:
    return Tab(title=title or url, url=url)


def test_upsert_replaces_whole_tab_list(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)

    registry.upsert("d1", [_tab("https://a.com"), _tab("https://b.com")])
    registry.upsert("d1", [_tab("https://c.com")])

    assert [tab.url for tab in registry.tabs("d1")] == ["https://c.com"]


def test_upsert_keeps_order_and_first_duplicate(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)

    registry.upsert(
        "d1",
        [_tab("https://b.com", "B"), _tab("https://a.com", "A"), _tab("https://b.com", "B again")],
    )

    assert registry.snapshot() == {
        "d1": [
            {"title": "B", "url": "https://b.com"},
            {"title": "A", "url": "https://a.com"},
        ]
    }


def test_upsert_refreshes_last_seen(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)
    registry.upsert("d1", [_tab("https://a.com")])
    first = registry.last_seen("d1")

    clock.advance(30)
    registry.upsert("d1", [_tab("https://a.com")])

    assert first is not None
    assert registry.last_seen("d1") == first + timedelta(seconds=30)


def test_last_seen_never_moves_backwards(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)
    registry.upsert("d1", [_tab("https://a.com")])
    first = registry.last_seen("d1")

    clock.advance(-120)
    registry.upsert("d1", [_tab("https://b.com")])

    assert registry.last_seen("d1") == first


def test_append_tab_creates_missing_device(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)

    assert registry.append_tab("d1", _tab("https://a.com")) is True
    assert "d1" in registry
    assert registry.has_url("d1", "https://a.com")


def test_append_tab_appends_after_existing(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)
    registry.upsert("d1", [_tab("https://a.com")])

    registry.append_tab("d1", _tab("https://b.com"))

    assert [tab.url for tab in registry.tabs("d1")] == ["https://a.com", "https://b.com"]


def test_append_duplicate_is_noop_and_keeps_last_seen(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)
    registry.upsert("d1", [_tab("https://a.com", "Old title")])
    before = registry.last_seen("d1")

    clock.advance(10)
    assert registry.append_tab("d1", _tab("https://a.com", "New title")) is False

    assert registry.tabs("d1") == [_tab("https://a.com", "Old title")]
    assert registry.last_seen("d1") == before


def test_remove(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)
    registry.upsert("d1", [_tab("https://a.com")])

    assert registry.remove("d1") is True
    assert registry.remove("d1") is False
    assert len(registry) == 0
    assert registry.snapshot() == {}


def test_snapshot_does_not_expose_last_seen(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)
    registry.upsert("d1", [_tab("https://a.com")])

    snapshot = registry.snapshot()

    assert set(snapshot) == {"d1"}
    assert set(snapshot["d1"][0]) == {"title", "url"}


def test_snapshot_is_a_copy(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)
    registry.upsert("d1", [_tab("https://a.com")])

    snapshot = registry.snapshot()
    snapshot["d1"].clear()
    snapshot["d2"] = []

    assert registry.device_ids == ["d1"]
    assert len(registry.tabs("d1")) == 1


def test_evict_stale_uses_strict_boundary(clock: ManualClock) -> None:
    registry = DeviceRegistry(clock=clock)
    registry.upsert("old", [_tab("https://a.com")])
    clock.advance(1)
    registry.upsert("edge", [_tab("https://b.com")])

    clock.advance(300)
    removed = registry.evict_stale(timedelta(seconds=300))

    # "old" is 301s idle, "edge" exactly 300s.
    assert removed == ["old"]
    assert registry.device_ids == ["edge"]


@pytest.mark.parametrize("device_id", ["", None, 42])
def test_invalid_device_id_rejected(clock: ManualClock, device_id: object) -> None:
    registry = DeviceRegistry(clock=clock)

    with pytest.raises(TabSyncValidationError):
        registry.upsert(device_id, [_tab("https://a.com")])  # type: ignore[arg-type]
    with pytest.raises(TabSyncValidationError):
        registry.append_tab(device_id, _tab("https://a.com"))  # type: ignore[arg-type]
