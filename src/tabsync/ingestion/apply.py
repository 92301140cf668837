"""Ingestion application helpers.

Both entry points funnel into the registry the same way:

- dedupe by URL, first occurrence wins
- resolve missing titles through the :class:`~tabsync._title.TitleLookup`
- mutate the registry only after every title is known
- ask for a broadcast when visible state changed
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tabsync._redact import strip_query
from tabsync._title import TitleLookup
from tabsync.ingestion.normalize import dedupe_entries
from tabsync.models.messages import AddTabRequest, TabUpdate
from tabsync.models.tab import Tab
from tabsync.state.store import DeviceRegistry

_logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], Awaitable[None]]


async def _noop() -> None:
    return None


@dataclass(frozen=True, slots=True)
class AddTabResult:
    """Outcome of a single-add: the resolved title and whether it was new."""

    title: str
    appended: bool


class TabIngestor:
    """Merges already-validated client input into the registry."""

    def __init__(
        self,
        registry: DeviceRegistry,
        titles: TitleLookup,
        *,
        on_change: ChangeCallback | None = None,
    ) -> None:
        self._registry = registry
        self._titles = titles
        self._on_change = on_change or _noop

    async def apply_update(self, update: TabUpdate) -> list[Tab]:
        """Full-replace path.

        Titles are resolved one at a time in list order, which keeps the
        number of outbound fetches per update at one.
        """
        tabs: list[Tab] = []
        for entry in dedupe_entries(update.tabs):
            if entry.needs_title:
                title = await self._titles.resolve(entry.url)
            else:
                assert entry.title is not None  # noqa: S101
                title = entry.title
            tabs.append(Tab(title=title, url=entry.url))

        self._registry.upsert(update.device_id, tabs)
        _logger.debug("Device %s now has %d tab(s)", update.device_id, len(tabs))
        await self._on_change()
        return tabs

    async def add_tab(self, request: AddTabRequest) -> AddTabResult:
        """Single-add path.

        The title is always resolved, even when the URL turns out to be a
        duplicate. Only an actual append triggers a broadcast.
        """
        title = await self._titles.resolve(request.url)
        appended = self._registry.append_tab(request.device_id, Tab(title=title, url=request.url))
        if appended:
            _logger.debug("Device %s added %s", request.device_id, strip_query(request.url))
            await self._on_change()
        else:
            _logger.debug("Device %s already has %s", request.device_id, strip_query(request.url))
        return AddTabResult(title=title, appended=appended)
