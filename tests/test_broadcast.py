from __future__ import annotations

import json
from dataclasses import dataclass, field

import pytest

from tabsync.broadcast import BroadcastHub, encode_snapshot


@dataclass
class FakeChannel:
    closed: bool = False
    fail: bool = False
    sent: list[str] = field(default_factory=list)
    close_calls: int = 0

    async def send_str(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True


SNAPSHOT = {"d1": [{"title": "A", "url": "https://a.com"}]}


@pytest.mark.asyncio
async def test_publish_sends_identical_payload_to_all() -> None:
    hub = BroadcastHub()
    first, second = FakeChannel(), FakeChannel()
    hub.subscribe(first)
    hub.subscribe(second)

    delivered = await hub.publish(SNAPSHOT)

    assert delivered == 2
    assert first.sent == second.sent
    assert json.loads(first.sent[0]) == SNAPSHOT


@pytest.mark.asyncio
async def test_publish_skips_closed_channels() -> None:
    hub = BroadcastHub()
    open_channel, closing = FakeChannel(), FakeChannel(closed=True)
    hub.subscribe(open_channel)
    hub.subscribe(closing)

    delivered = await hub.publish(SNAPSHOT)

    assert delivered == 1
    assert closing.sent == []
    # Closing channels are unsubscribed by their own connection handler.
    assert hub.subscriber_count == 2


@pytest.mark.asyncio
async def test_publish_prunes_failed_channels() -> None:
    hub = BroadcastHub()
    healthy, broken = FakeChannel(), FakeChannel(fail=True)
    hub.subscribe(healthy)
    hub.subscribe(broken)

    assert await hub.publish(SNAPSHOT) == 1
    assert hub.subscriber_count == 1

    assert await hub.publish({}) == 1
    assert len(healthy.sent) == 2


@pytest.mark.asyncio
async def test_publish_with_no_subscribers() -> None:
    assert await BroadcastHub().publish(SNAPSHOT) == 0


@pytest.mark.asyncio
async def test_send_snapshot_to_single_channel() -> None:
    hub = BroadcastHub()
    channel = FakeChannel()

    assert await hub.send_snapshot(channel, {}) is True
    assert channel.sent == ["{}"]
    assert await hub.send_snapshot(FakeChannel(closed=True), {}) is False


@pytest.mark.asyncio
async def test_unsubscribe_and_close_all() -> None:
    hub = BroadcastHub()
    kept, dropped = FakeChannel(), FakeChannel()
    hub.subscribe(kept)
    dropped_id = hub.subscribe(dropped)

    hub.unsubscribe(dropped_id)
    hub.unsubscribe(dropped_id)
    await hub.close_all()

    assert dropped.close_calls == 0
    assert kept.close_calls == 1
    assert hub.subscriber_count == 0


def test_encode_snapshot_keeps_unicode() -> None:
    payload = encode_snapshot({"d1": [{"title": "Café", "url": "https://café.fr"}]})

    assert "Café" in payload
    assert json.loads(payload)["d1"][0]["title"] == "Café"
