"""Pydantic models for tabsync wire payloads."""

from tabsync.models._base import TabSyncBaseModel
from tabsync.models.messages import (
    AddTabRequest,
    AddTabResponse,
    DiscoveryInfo,
    ErrorResponse,
    TabUpdate,
)
from tabsync.models.tab import Tab, TabEntry

__all__ = [
    "AddTabRequest",
    "AddTabResponse",
    "DiscoveryInfo",
    "ErrorResponse",
    "Tab",
    "TabEntry",
    "TabSyncBaseModel",
    "TabUpdate",
]
