"""tabsync - Local-network browser tab synchronization server."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tabsync")
except PackageNotFoundError:
    __version__ = "0+local"

from tabsync._title import TitleLookup, TitleResolver
from tabsync.broadcast import BroadcastHub
from tabsync.config import TabSyncConfig
from tabsync.exceptions import (
    TabSyncConfigError,
    TabSyncError,
    TabSyncStartupError,
    TabSyncValidationError,
)
from tabsync.ingestion import AddTabResult, TabIngestor
from tabsync.models import (
    AddTabRequest,
    AddTabResponse,
    DiscoveryInfo,
    ErrorResponse,
    Tab,
    TabEntry,
    TabUpdate,
)
from tabsync.server import SyncServer
from tabsync.state.store import DeviceRegistry
from tabsync.supervisor import ServerSupervisor
from tabsync.sweep import StalenessSweep

__all__ = [
    "__version__",
    "AddTabRequest",
    "AddTabResponse",
    "AddTabResult",
    "BroadcastHub",
    "DeviceRegistry",
    "DiscoveryInfo",
    "ErrorResponse",
    "ServerSupervisor",
    "StalenessSweep",
    "SyncServer",
    "Tab",
    "TabEntry",
    "TabIngestor",
    "TabSyncConfig",
    "TabSyncConfigError",
    "TabSyncError",
    "TabSyncStartupError",
    "TabSyncValidationError",
    "TabUpdate",
    "TitleLookup",
    "TitleResolver",
]
