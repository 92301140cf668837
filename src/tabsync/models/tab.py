"""Tab models: the stored tab and the incoming, possibly untitled, entry."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator

from tabsync.models._base import NonEmptyStr, TabSyncBaseModel


class Tab(TabSyncBaseModel):
    """A resolved ``(title, url)`` pair as stored and broadcast."""

    title: str
    url: NonEmptyStr


class TabEntry(TabSyncBaseModel):
    """One tab as sent by a client; the title may be missing."""

    url: NonEmptyStr
    title: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _drop_non_string_title(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @property
    def needs_title(self) -> bool:
        """Whether the title must be resolved before the tab is stored.

        Browsers report the URL itself as the title of a page that has
        not finished loading, so that case counts as missing too.
        """
        return not self.title or self.title == self.url
