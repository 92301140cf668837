"""Ingestion layer.

This package turns client input (push-channel frames and single-add
requests) into registry mutations. Only this layer resolves titles and
decides when a broadcast is due.
"""

from tabsync.ingestion.apply import AddTabResult, TabIngestor
from tabsync.ingestion.push import parse_push_message

__all__ = ["AddTabResult", "TabIngestor", "parse_push_message"]
