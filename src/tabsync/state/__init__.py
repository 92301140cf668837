"""State/registry layer.

This package is the single source of truth for which devices are known
and which tabs each of them has open. Ingestion and the staleness sweep
are the only writers.
"""
