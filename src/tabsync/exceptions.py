"""Custom exception hierarchy for tabsync."""

from __future__ import annotations


class TabSyncError(Exception):
    """Base exception for all tabsync errors."""


class TabSyncConfigError(TabSyncError):
    """Invalid configuration value (usually from the environment)."""

    def __init__(self, message: str, *, variable: str = "") -> None:
        self.variable = variable
        super().__init__(message)


class TabSyncValidationError(TabSyncError, ValueError):
    """Caller input that cannot be applied to the registry."""


class TabSyncStartupError(TabSyncError):
    """The server could not start (port in use, missing readiness marker).

    This is the only fatal condition; everything else is absorbed while
    the server keeps running.
    """

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        self.returncode = returncode
        super().__init__(message)
