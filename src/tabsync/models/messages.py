"""Request, response and push-channel message models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import field_validator

from tabsync.models._base import NonEmptyStr, TabSyncBaseModel
from tabsync.models.tab import TabEntry


def _is_usable_entry(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    url = value.get("url")
    return isinstance(url, str) and bool(url)


class TabUpdate(TabSyncBaseModel):
    """Full-replace update: the complete tab list of one device."""

    device_id: NonEmptyStr
    tabs: list[TabEntry]

    @field_validator("tabs", mode="before")
    @classmethod
    def _require_tabs(cls, value: Any) -> Any:
        # Emptiness is judged on what the client sent; unusable entries
        # are skipped afterwards, which may leave the device with no tabs.
        if not isinstance(value, list) or not value:
            raise ValueError("tabs must be a non-empty list")
        return [entry for entry in value if _is_usable_entry(entry)]


class AddTabRequest(TabSyncBaseModel):
    """Single-add request body for ``POST /add``."""

    device_id: NonEmptyStr
    url: NonEmptyStr


class AddTabResponse(TabSyncBaseModel):
    success: Literal[True] = True
    title: str


class ErrorResponse(TabSyncBaseModel):
    error: str


class DiscoveryInfo(TabSyncBaseModel):
    """Reachable address of the server, returned by ``GET /ip``."""

    ip: str
    ws_port: int
