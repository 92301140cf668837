"""Helpers for safe logging of client payloads.

Push messages can be large (hundreds of tabs) and URLs can carry session
tokens in their query strings. This module shortens payloads and strips
query strings before they reach a log line.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_MAX_LIST_ITEMS = 5


def strip_query(url: str) -> str:
    """Drop the query string and fragment of *url* for logging."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.query and not parts.fragment:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def preview_for_log(value: Any, *, max_string: int = 200, _depth: int = 0) -> Any:
    """Return a shortened copy of *value* suitable for log lines."""
    if _depth > 10:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if "://" in value:
            value = strip_query(value)
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        return {
            str(k): preview_for_log(v, max_string=max_string, _depth=_depth + 1) for k, v in value.items()
        }

    if isinstance(value, Sequence):
        items = [preview_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value[:_MAX_LIST_ITEMS]]
        if len(value) > _MAX_LIST_ITEMS:
            items.append(f"<+{len(value) - _MAX_LIST_ITEMS} more>")
        return items

    return repr(value)
