"""Push-channel fan-out of registry snapshots."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from typing import Any, Protocol

_logger = logging.getLogger(__name__)


class PushChannel(Protocol):
    """What the hub needs from a connection.

    :class:`aiohttp.web.WebSocketResponse` satisfies this as is.
    """

    @property
    def closed(self) -> bool: ...

    async def send_str(self, data: str) -> None: ...


def encode_snapshot(snapshot: Mapping[str, Any]) -> str:
    return json.dumps(snapshot, ensure_ascii=False, separators=(",", ":"))


class BroadcastHub:
    """Tracks live subscribers and sends each of them the same snapshot.

    Channels that are already closing are skipped. A channel whose send
    fails is pruned; reconnecting is the client's job.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, PushChannel] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, channel: PushChannel) -> str:
        subscriber_id = uuid.uuid4().hex[:8]
        self._subscribers[subscriber_id] = channel
        _logger.info("Push subscriber %s connected (%d live)", subscriber_id, len(self._subscribers))
        return subscriber_id

    def unsubscribe(self, subscriber_id: str) -> None:
        if self._subscribers.pop(subscriber_id, None) is not None:
            _logger.info("Push subscriber %s disconnected (%d live)", subscriber_id, len(self._subscribers))

    async def _send(self, channel: PushChannel, payload: str) -> bool:
        if channel.closed:
            return False
        try:
            await channel.send_str(payload)
        except (ConnectionError, RuntimeError) as exc:
            # aiohttp raises these when the peer went away mid-send.
            _logger.debug("Push send failed: %s", exc)
            return False
        return True

    async def send_snapshot(self, channel: PushChannel, snapshot: Mapping[str, Any]) -> bool:
        """Push *snapshot* to one channel, e.g. right after it connected."""
        return await self._send(channel, encode_snapshot(snapshot))

    async def publish(self, snapshot: Mapping[str, Any]) -> int:
        """Send *snapshot* to every open subscriber.

        Returns the number of subscribers that received it.
        """
        payload = encode_snapshot(snapshot)
        delivered = 0
        failed: list[str] = []
        for subscriber_id, channel in list(self._subscribers.items()):
            if channel.closed:
                continue
            if await self._send(channel, payload):
                delivered += 1
            else:
                failed.append(subscriber_id)

        for subscriber_id in failed:
            self.unsubscribe(subscriber_id)

        return delivered

    async def close_all(self) -> None:
        channels = list(self._subscribers.values())
        self._subscribers.clear()
        for channel in channels:
            close = getattr(channel, "close", None)
            if close is not None and not channel.closed:
                await close()
