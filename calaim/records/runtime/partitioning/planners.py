"""Partition planning: turning one query plan into bounded filters.

This module provides the PartitionPlanner that expands a QueryPlan into
one equality filter per partition value plus a catch-all filter for
null/empty values, and the PartitionStrategy variants that decide which
partition values are queried.

Known limitation:
    With EnumeratedValues, values that exist upstream but are missing from
    ``partition_values`` (and are not null/empty) are never queried and are
    silently absent from the result. DiscoverThenPartition closes the gap by
    asking the upstream for the distinct values first.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from ...core.enums import FilterKind
from ...models import AccessToken, QueryPlan
from .definitions import Filter
from .telemetry import log_partition_plan

if TYPE_CHECKING:
    from .fetcher import PageFetcher

ALWAYS_TRUE = "1=1"
UNKNOWN_LABEL = "<unknown>"
ALL_LABEL = "<all>"


def quote_literal(value: str) -> str:
    """Quote a string literal for a SQL-like predicate."""
    return "'" + value.replace("'", "''") + "'"


def comparable_timestamp(value: datetime) -> str:
    """Render a timestamp the way the upstream compares most reliably.

    No milliseconds and no timezone suffix; aware values are converted to UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value.replace(microsecond=0).isoformat()


def combine_where(parts: list[str]) -> str:
    if not parts:
        return ALWAYS_TRUE
    if len(parts) == 1:
        return parts[0]
    return " AND ".join(f"({p})" for p in parts)


def incremental_condition(plan: QueryPlan) -> str | None:
    if plan.updated_field is None or plan.updated_since is None:
        return None
    return f"{plan.updated_field}>{quote_literal(comparable_timestamp(plan.updated_since))}"


def extra_conditions(plan: QueryPlan) -> list[str]:
    """Conditions ANDed into every partition filter."""
    parts = [plan.additional_where] if plan.additional_where else []
    incremental = incremental_condition(plan)
    if incremental:
        parts.append(incremental)
    return parts


class PartitionPlanner:
    """Plans the filter list for a query plan.

    The planner is pure: it never talks to the upstream. Filters come back
    in merge order, which decides which duplicate survives deduplication.
    """

    def plan(self, query_plan: QueryPlan) -> list[Filter]:
        """Plan filters for a query plan.

        Args:
            query_plan: Retrieval description

        Returns:
            Equality filters in the given value order followed by exactly one
            catch-all filter; or a single unpartitioned filter when no
            partition field/values are set
        """
        extras = extra_conditions(query_plan)

        if not query_plan.is_partitioned:
            filters = [
                Filter(
                    where=combine_where(extras),
                    index=0,
                    label=ALL_LABEL,
                    kind=FilterKind.UNPARTITIONED,
                )
            ]
            log_partition_plan(
                table=query_plan.table,
                partition_field=query_plan.partition_field,
                total_filters=1,
                may_truncate=True,
            )
            return filters

        field = query_plan.partition_field
        filters = [
            Filter(
                where=combine_where([f"{field}={quote_literal(value)}", *extras]),
                index=index,
                label=value,
                kind=FilterKind.VALUE,
            )
            for index, value in enumerate(query_plan.partition_values)
        ]
        filters.append(
            Filter(
                where=combine_where([f"{field} IS NULL OR {field}=''", *extras]),
                index=len(filters),
                label=UNKNOWN_LABEL,
                kind=FilterKind.CATCH_ALL,
            )
        )

        log_partition_plan(
            table=query_plan.table,
            partition_field=field,
            total_filters=len(filters),
            may_truncate=False,
        )
        return filters


@dataclass(frozen=True)
class ResolvedValues:
    """Partition values chosen by a strategy.

    Attributes:
        values: Values to plan equality filters for
        discovery_failed: True when discovery could not complete and the
            enumerated values were used as a fallback
    """

    values: tuple[str, ...]
    discovery_failed: bool = False


class PartitionStrategy(Protocol):
    """Decides which partition values a retrieval queries."""

    async def resolve(
        self,
        plan: QueryPlan,
        fetcher: PageFetcher,
        token: AccessToken,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ResolvedValues:
        ...


class EnumeratedValues:
    """Use the caller-supplied ``partition_values`` as-is."""

    async def resolve(
        self,
        plan: QueryPlan,
        fetcher: PageFetcher,
        token: AccessToken,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ResolvedValues:
        return ResolvedValues(values=plan.partition_values)


class DiscoverThenPartition:
    """Ask the upstream for the distinct partition values first.

    Issues ``q.select=<field>&q.groupBy=<field>`` (paged like any other
    partition) and plans one filter per non-empty value found. Enumerated
    values that were discovered keep their caller order and come first;
    newly discovered values follow in discovery order. If discovery stops
    early (including cancellation), the union of enumerated and discovered
    values is used and the result is flagged ``discovery_failed``.
    """

    async def resolve(
        self,
        plan: QueryPlan,
        fetcher: PageFetcher,
        token: AccessToken,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ResolvedValues:
        field = plan.partition_field
        if field is None:
            return ResolvedValues(values=plan.partition_values)

        discovery_filter = Filter(
            where=combine_where(extra_conditions(plan)),
            label=f"<distinct {field}>",
            kind=FilterKind.UNPARTITIONED,
        )
        result = await fetcher.fetch_partition(
            token,
            plan.table,
            discovery_filter,
            plan.page_size,
            select_fields=(field,),
            group_by=field,
            cancel_event=cancel_event,
        )

        discovered: dict[str, None] = {}
        for record in result.records:
            raw = record.get(field)
            # NULL and '' are covered by the catch-all filter; anything else,
            # whitespace included, must be matched exactly
            if raw is None or raw == "":
                continue
            discovered.setdefault(str(raw), None)

        if result.partial:
            merged = dict.fromkeys(plan.partition_values)
            merged.update(discovered)
            return ResolvedValues(values=tuple(merged), discovery_failed=True)

        ordered = [v for v in plan.partition_values if v in discovered]
        ordered.extend(v for v in discovered if v not in plan.partition_values)
        return ResolvedValues(values=tuple(ordered))
