"""Structured logging for partitioned retrieval.

This module provides telemetry hooks for partition planning, page fetching
and merging. Each event is logged under a stable snake_case name with its
fields in ``extra`` so log pipelines can index them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .definitions import Filter, PartitionResult, RetrievalDiagnostics

logger = logging.getLogger(__name__)


def log_partition_plan(
    *,
    table: str,
    partition_field: str | None,
    total_filters: int,
    may_truncate: bool,
) -> None:
    """Log partition plan creation.

    Args:
        table: Upstream table
        partition_field: Discriminator field (None if unpartitioned)
        total_filters: Number of filters planned
        may_truncate: True when the plan is a single unpartitioned query
    """
    log = logger.warning if may_truncate else logger.info
    log(
        "partition_plan_created",
        extra={
            "table": table,
            "partition_field": partition_field,
            "total_filters": total_filters,
            "may_truncate": may_truncate,
        },
    )


def log_page_fetched(
    *,
    table: str,
    filter: Filter,
    page_number: int,
    rows: int,
    latency_ms: float | None = None,
) -> None:
    logger.debug(
        "page_fetched",
        extra={
            "table": table,
            "partition": filter.label,
            "partition_index": filter.index,
            "page_number": page_number,
            "rows": rows,
            "latency_ms": latency_ms,
        },
    )


def log_partition_completed(*, table: str, result: PartitionResult) -> None:
    """Log a drained (or stopped) partition.

    Args:
        table: Upstream table
        result: Outcome of the partition
    """
    logger.info(
        "partition_completed",
        extra={
            "table": table,
            "partition": result.filter.label,
            "partition_index": result.filter.index,
            "pages_requested": result.pages_requested,
            "rows": len(result.records),
            "partial": result.partial,
            "reason": result.reason.value,
        },
    )


def log_partition_error(
    *,
    table: str,
    filter: Filter,
    page_number: int,
    status_code: int | None,
    error_type: str,
    error_message: str,
) -> None:
    """Log a failed page request; the partition keeps earlier pages.

    Args:
        table: Upstream table
        filter: Partition filter being drained
        page_number: One-based page that failed
        status_code: HTTP status (None for transport errors and timeouts)
        error_type: Exception class name
        error_message: Error message (upstream body is truncated)
    """
    logger.error(
        "partition_error",
        extra={
            "table": table,
            "partition": filter.label,
            "partition_index": filter.index,
            "page_number": page_number,
            "status_code": status_code,
            "error_type": error_type,
            "error_message": error_message[:500],
        },
    )


def log_safety_cap_reached(
    *,
    table: str,
    filter: Filter,
    max_pages: int,
    page_size: int,
    rows: int,
) -> None:
    """Warn that a partition was cut off by the page cap.

    Hitting the cap usually means the partition holds more than
    ``max_pages * page_size`` rows and the remainder was not fetched.
    """
    logger.warning(
        "partition_safety_cap_reached",
        extra={
            "table": table,
            "partition": filter.label,
            "partition_index": filter.index,
            "max_pages": max_pages,
            "page_size": page_size,
            "rows": rows,
        },
    )


def log_retrieval_complete(
    *,
    diagnostics: RetrievalDiagnostics,
    partial: bool,
    cancelled: bool,
) -> None:
    logger.info(
        "retrieval_complete",
        extra={
            "table": diagnostics.table,
            "estimated_total": diagnostics.estimated_total,
            "raw_total": diagnostics.raw_total,
            "unique_total": diagnostics.unique_total,
            "duplicates_dropped": diagnostics.duplicates_dropped,
            "synthetic_keys": diagnostics.synthetic_keys,
            "partitions": len(diagnostics.partitions),
            "partial": partial,
            "cancelled": cancelled,
            "elapsed_ms": diagnostics.elapsed_ms,
        },
    )
