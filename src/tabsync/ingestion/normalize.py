"""Normalization helpers shared by the ingestion paths."""

from __future__ import annotations

from collections.abc import Iterable

from tabsync.models.tab import TabEntry


def dedupe_entries(entries: Iterable[TabEntry]) -> list[TabEntry]:
    """Drop repeated URLs, keeping the first occurrence and its position."""
    seen: set[str] = set()
    result: list[TabEntry] = []
    for entry in entries:
        if entry.url in seen:
            continue
        seen.add(entry.url)
        result.append(entry)
    return result
