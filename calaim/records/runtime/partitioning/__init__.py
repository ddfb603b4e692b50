"""Partitioned retrieval layer for row-capped list endpoints.

This module provides reusable logic that splits one oversized query into
bounded partitions, drains each partition page by page, and merges the
results with deduplication.

Architecture:
    The partitioning layer consists of:
    - definitions.py: Filter, PartitionPolicy and result structures
    - planners.py: Filter planning and partition-value strategies
    - fetcher.py: Per-partition page loop with a safety cap
    - aggregator.py: Merge and first-seen-wins deduplication
    - telemetry.py: Structured logging
"""

from __future__ import annotations

from .aggregator import DEFAULT_ID_ALIASES, KeyedRecord, RecordAggregator
from .definitions import (
    DEFAULT_MAX_PAGES,
    Filter,
    MergeStats,
    PartitionPolicy,
    PartitionResult,
    RetrievalDiagnostics,
    RetrievalResult,
)
from .fetcher import PageFetcher
from .planners import (
    DiscoverThenPartition,
    EnumeratedValues,
    PartitionPlanner,
    PartitionStrategy,
    ResolvedValues,
)

__all__ = [
    "Filter",
    "PartitionPolicy",
    "PartitionResult",
    "MergeStats",
    "RetrievalDiagnostics",
    "RetrievalResult",
    "DEFAULT_MAX_PAGES",
    "PartitionPlanner",
    "PartitionStrategy",
    "EnumeratedValues",
    "DiscoverThenPartition",
    "ResolvedValues",
    "PageFetcher",
    "RecordAggregator",
    "KeyedRecord",
    "DEFAULT_ID_ALIASES",
]
