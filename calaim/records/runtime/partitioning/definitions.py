"""Partition metadata, policy and result structures.

This module defines the data structures used to describe how a retrieval is
split into partitions, how each partition is paged, and what came back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ...core.enums import FilterKind, PartialReason
from ...models import MAX_PAGE_SIZE, CanonicalRecord, RawRecord

DEFAULT_MAX_PAGES = 10


@dataclass(frozen=True)
class PartitionPolicy:
    """Paging policy applied to every partition.

    Attributes:
        page_size: Rows requested per page (upstream cap is 1000)
        max_pages: Safety cap on page requests per partition
    """

    page_size: int = MAX_PAGE_SIZE
    max_pages: int = DEFAULT_MAX_PAGES

    def __post_init__(self) -> None:
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        if self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")

    @property
    def max_rows(self) -> int:
        """Most rows a single partition can yield before the cap stops it."""
        return self.page_size * self.max_pages


@dataclass(frozen=True)
class Filter:
    """One bounded upstream query.

    Attributes:
        where: WHERE-clause sent as ``q.where``
        index: Zero-based position in the plan (merge order)
        label: Human-readable partition name (value, "<unknown>" or "<all>")
        kind: Role of the filter in the plan
    """

    where: str
    index: int = 0
    label: str = ""
    kind: FilterKind = FilterKind.UNPARTITIONED


@dataclass
class PartitionResult:
    """Outcome of draining one partition.

    Attributes:
        filter: Filter that was drained
        records: Raw records in page order
        pages_requested: Page requests actually issued
        reason: Why the partition stopped early (NONE when fully drained)
        status_code: HTTP status of the failing page, if any
        error: Error message of the failing page, if any
    """

    filter: Filter
    records: list[RawRecord] = field(default_factory=list)
    pages_requested: int = 0
    reason: PartialReason = PartialReason.NONE
    status_code: int | None = None
    error: str | None = None

    @property
    def partial(self) -> bool:
        return self.reason.is_partial

    @property
    def capped_by_safety_limit(self) -> bool:
        return self.reason is PartialReason.SAFETY_CAP

    def summary(self) -> dict[str, Any]:
        return {
            "index": self.filter.index,
            "label": self.filter.label,
            "kind": self.filter.kind.value,
            "where": self.filter.where,
            "rows": len(self.records),
            "pages_requested": self.pages_requested,
            "partial": self.partial,
            "reason": self.reason.value,
            "capped_by_safety_limit": self.capped_by_safety_limit,
            "status_code": self.status_code,
            "error": self.error,
        }


@dataclass(frozen=True)
class MergeStats:
    """Bookkeeping from deduplication.

    Attributes:
        raw_total: Records before deduplication
        unique_total: Records after deduplication
        duplicates_dropped: Records discarded on key collision
        synthetic_keys: Records without any id field (never deduplicated)
    """

    raw_total: int
    unique_total: int
    duplicates_dropped: int
    synthetic_keys: int


@dataclass
class RetrievalDiagnostics:
    """Machine-readable account of a retrieval.

    ``estimated_total`` is the upstream COUNT under the plan's
    ``additional_where`` and incremental conditions (the whole table when
    neither is set). It is 0 when counting is disabled, fails, or the
    retrieval was cancelled before it started.
    """

    table: str
    estimated_total: int = 0
    raw_total: int = 0
    unique_total: int = 0
    duplicates_dropped: int = 0
    synthetic_keys: int = 0
    may_truncate: bool = False
    discovery_failed: bool = False
    partitions: list[dict[str, Any]] = field(default_factory=list)
    value_counts: dict[str, int] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def total_page_requests(self) -> int:
        return sum(p["pages_requested"] for p in self.partitions)

    @property
    def partial_reasons(self) -> set[PartialReason]:
        return {PartialReason(p["reason"]) for p in self.partitions if p["partial"]}


@dataclass
class RetrievalResult:
    """Result of ``fetch_all``.

    Attributes:
        records: Canonical, deduplicated records
        partial: True when any partition stopped early or the run was cancelled
        cancelled: True when the cancellation signal was observed
        diagnostics: Counts and per-partition outcomes
        raw_records: Deduplicated raw records (only when requested)
    """

    records: list[CanonicalRecord]
    partial: bool
    cancelled: bool
    diagnostics: RetrievalDiagnostics
    raw_records: list[RawRecord] | None = None

    @property
    def count(self) -> int:
        return len(self.records)
