"""Registry timing policy.

This module contains *no* storage. It only decides how timestamps move
and when a device counts as stale.
"""

from __future__ import annotations

from datetime import datetime, timedelta


def advance_last_seen(previous: datetime | None, now: datetime) -> datetime:
    """Return the new ``last_seen`` value; it never moves backwards."""
    if previous is None:
        return now
    return max(previous, now)


def is_stale(now: datetime, last_seen: datetime, timeout: timedelta) -> bool:
    """A device is stale once its age is strictly greater than *timeout*."""
    return now - last_seen > timeout
