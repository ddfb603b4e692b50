"""Complete-dataset retrieval engine.

The engine turns one "fetch everything" request into a loss-free record
set despite the upstream's silent 1000-row cap per query.

Architecture:
    1. Acquire one token per retrieval through the process-wide TokenCache
    2. Estimate the row count (best effort, diagnostics only)
    3. Resolve partition values through a PartitionStrategy
    4. Plan filters (one per value + one catch-all)
    5. Drain filters with a bounded pool of workers; each worker pages
       through its partition sequentially
    6. Merge in filter order (not completion order) and deduplicate
    7. Normalize every surviving record

Design Decisions:
    - Partial data never raises: every partition reports why it stopped
      and the overall result carries ``partial``/``cancelled`` flags
    - Only AuthError aborts a retrieval
    - Cancellation is cooperative through an ``asyncio.Event``: no new page
      is requested once it is set, and gathered rows are still returned
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime
from time import perf_counter
from typing import Any

from ..core.config import RecordsSettings, get_settings
from ..core.enums import PartialReason
from ..models import AccessToken, Credentials, QueryPlan
from ..normalize import MEMBER_SCHEMA, MEMBERS_TABLE, MCO_FIELD, MCO_PARTITIONS, Normalizer, RecordSchema
from ..normalize.members import MEMBER_SELECT_FIELDS, UPDATED_FIELD
from ..utils.http import HTTPClient
from .auth import TokenCache, TokenProvider, get_token_cache
from .count import CountEstimator
from .partitioning import (
    DEFAULT_ID_ALIASES,
    EnumeratedValues,
    Filter,
    PageFetcher,
    PartitionPlanner,
    PartitionPolicy,
    PartitionResult,
    PartitionStrategy,
    RecordAggregator,
    RetrievalDiagnostics,
    RetrievalResult,
)
from .partitioning.planners import combine_where, extra_conditions
from .partitioning.telemetry import log_retrieval_complete

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3

PASSTHROUGH_SCHEMA = RecordSchema(name="passthrough", fields=())


class RetrievalEngine:
    """Fetches, merges and normalizes complete record sets."""

    def __init__(
        self,
        http: HTTPClient | None = None,
        *,
        policy: PartitionPolicy | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        normalizer: Normalizer | None = None,
        aggregator: RecordAggregator | None = None,
        strategy: PartitionStrategy | None = None,
        token_cache: TokenCache | None = None,
        token_provider: TokenProvider | None = None,
        estimate_count: bool = True,
        request_timeout: float = 30.0,
        owns_http: bool | None = None,
    ) -> None:
        """Initialize retrieval engine.

        Args:
            http: HTTP client (one is created and owned when omitted)
            policy: Paging policy (page size and safety cap)
            concurrency: Partitions drained in parallel (1 = sequential)
            normalizer: Record normalizer (defaults to passthrough)
            aggregator: Dedup aggregator (defaults to the schema's id aliases)
            strategy: Default partition strategy (EnumeratedValues)
            token_cache: Token cache (process-wide cache by default)
            token_provider: Token provider (built on ``http`` by default)
            estimate_count: Whether to issue the diagnostic COUNT query
            request_timeout: Per-request timeout for an owned HTTP client
            owns_http: Whether ``close()`` closes the HTTP client (defaults
                to True only when the client is created here)
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._owns_http = http is None if owns_http is None else owns_http
        self._http = http or HTTPClient(timeout=request_timeout)
        self._policy = policy or PartitionPolicy()
        self._concurrency = concurrency
        self._normalizer = normalizer or Normalizer(PASSTHROUGH_SCHEMA)
        self._aggregator = aggregator or RecordAggregator(
            self._normalizer.schema.id_aliases or DEFAULT_ID_ALIASES
        )
        self._strategy = strategy or EnumeratedValues()
        self._token_cache = token_cache or get_token_cache()
        self._token_provider = token_provider or TokenProvider(self._http)
        self._estimate_count = estimate_count
        self._planner = PartitionPlanner()

    @classmethod
    def from_settings(
        cls,
        settings: RecordsSettings | None = None,
        **kwargs: Any,
    ) -> RetrievalEngine:
        """Build an engine tuned by ``CASPIO_*`` settings."""
        settings = settings or get_settings()
        given_http = kwargs.pop("http", None)
        http = given_http or HTTPClient(timeout=settings.request_timeout)
        return cls(
            http,
            policy=PartitionPolicy(page_size=settings.page_size, max_pages=settings.max_pages),
            concurrency=settings.concurrency,
            token_provider=kwargs.pop("token_provider", None)
            or TokenProvider(http, retries=settings.token_retries, backoff=settings.token_backoff),
            owns_http=given_http is None,
            **kwargs,
        )

    @property
    def policy(self) -> PartitionPolicy:
        return self._policy

    async def fetch_all(
        self,
        credentials: Credentials,
        query_plan: QueryPlan,
        *,
        strategy: PartitionStrategy | None = None,
        cancel_event: asyncio.Event | None = None,
        include_raw: bool = False,
        count_field: str | None = None,
    ) -> RetrievalResult:
        """Retrieve every record described by ``query_plan``.

        Args:
            credentials: Upstream client credentials
            query_plan: What to fetch and how to partition it
            strategy: Partition strategy for this call (overrides default)
            cancel_event: Cooperative cancellation signal
            include_raw: Also return the deduplicated raw records
            count_field: Canonical field whose value distribution is
                reported in ``diagnostics.value_counts``

        Returns:
            RetrievalResult; ``partial`` is set when any partition stopped
            early, ``cancelled`` when cancellation cut the run short

        Raises:
            AuthError: If no token could be obtained
        """
        started = perf_counter()
        cancel = cancel_event or asyncio.Event()

        token = await self._token_cache.get(credentials, self._token_provider)
        fetcher = PageFetcher(self._http, credentials.base_url, self._policy)
        diagnostics = RetrievalDiagnostics(table=query_plan.table)

        if self._estimate_count and not cancel.is_set():
            # Scoped to the plan's extra conditions, not to any partition
            extras = extra_conditions(query_plan)
            estimator = CountEstimator(self._http, credentials.base_url)
            diagnostics.estimated_total = await estimator.estimate_count(
                token, query_plan.table, combine_where(extras) if extras else None
            )

        resolved = await (strategy or self._strategy).resolve(
            query_plan, fetcher, token, cancel_event=cancel
        )
        diagnostics.discovery_failed = resolved.discovery_failed
        plan = query_plan
        if resolved.values != query_plan.partition_values:
            plan = query_plan.model_copy(update={"partition_values": resolved.values})

        filters = self._planner.plan(plan)
        diagnostics.may_truncate = not plan.is_partitioned

        results = await self._drain(token, plan, filters, fetcher, cancel)

        if any(r.status_code == 401 for r in results):
            self._token_cache.invalidate(credentials, token)

        keyed, stats = self._aggregator.merge_keyed((r.filter, r.records) for r in results)
        records = [
            self._normalizer.normalize(entry.record, key=None if entry.synthetic else entry.key)
            for entry in keyed
        ]

        diagnostics.raw_total = stats.raw_total
        diagnostics.unique_total = stats.unique_total
        diagnostics.duplicates_dropped = stats.duplicates_dropped
        diagnostics.synthetic_keys = stats.synthetic_keys
        diagnostics.partitions = [r.summary() for r in results]
        if count_field:
            diagnostics.value_counts = dict(
                Counter(str(record.get(count_field)) for record in records)
            )
        diagnostics.elapsed_ms = (perf_counter() - started) * 1000.0

        cancelled = any(r.reason is PartialReason.CANCELLED for r in results)
        partial = any(r.partial for r in results)
        log_retrieval_complete(diagnostics=diagnostics, partial=partial, cancelled=cancelled)

        return RetrievalResult(
            records=records,
            partial=partial,
            cancelled=cancelled,
            diagnostics=diagnostics,
            raw_records=[entry.record for entry in keyed] if include_raw else None,
        )

    async def _drain(
        self,
        token: AccessToken,
        plan: QueryPlan,
        filters: list[Filter],
        fetcher: PageFetcher,
        cancel: asyncio.Event,
    ) -> list[PartitionResult]:
        """Drain all filters with a bounded worker pool.

        Returns results in filter order regardless of completion order.
        """
        queue: asyncio.Queue[Filter] = asyncio.Queue()
        for flt in filters:
            queue.put_nowait(flt)
        results: dict[int, PartitionResult] = {}

        async def worker() -> None:
            while True:
                try:
                    flt = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                if cancel.is_set():
                    results[flt.index] = PartitionResult(filter=flt, reason=PartialReason.CANCELLED)
                    continue
                results[flt.index] = await fetcher.fetch_partition(
                    token,
                    plan.table,
                    flt,
                    plan.page_size,
                    select_fields=plan.select_fields,
                    cancel_event=cancel,
                )

        workers = min(self._concurrency, len(filters))
        await asyncio.gather(*(worker() for _ in range(workers)))
        return [results[flt.index] for flt in filters]

    async def close(self) -> None:
        if self._owns_http:
            await self._http.close()

    async def __aenter__(self) -> RetrievalEngine:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def fetch_all(
    credentials: Credentials,
    query_plan: QueryPlan,
    *,
    normalizer: Normalizer | None = None,
    strategy: PartitionStrategy | None = None,
    cancel_event: asyncio.Event | None = None,
    include_raw: bool = False,
    count_field: str | None = None,
    settings: RecordsSettings | None = None,
) -> RetrievalResult:
    """One-shot retrieval with an engine built from settings."""
    async with RetrievalEngine.from_settings(settings, normalizer=normalizer) as engine:
        return await engine.fetch_all(
            credentials,
            query_plan,
            strategy=strategy,
            cancel_event=cancel_event,
            include_raw=include_raw,
            count_field=count_field,
        )


async def fetch_all_members(
    credentials: Credentials,
    *,
    engine: RetrievalEngine | None = None,
    partitions: tuple[str, ...] = MCO_PARTITIONS,
    strategy: PartitionStrategy | None = None,
    updated_since: datetime | None = None,
    include_raw: bool = False,
    cancel_event: asyncio.Event | None = None,
) -> RetrievalResult:
    """Fetch every CalAIM member, partitioned by health plan.

    Args:
        credentials: Upstream client credentials
        engine: Engine to use; a settings-tuned one with the member schema
            is created (and closed) when omitted
        partitions: Health plans to enumerate
        strategy: Partition strategy (enumerated plans by default)
        updated_since: Only members modified after this instant
        include_raw: Also return raw rows
        cancel_event: Cooperative cancellation signal

    Returns:
        RetrievalResult with the plan distribution in
        ``diagnostics.value_counts``
    """
    settings = get_settings()
    plan = QueryPlan(
        table=MEMBERS_TABLE,
        partition_field=MCO_FIELD,
        partition_values=partitions,
        page_size=settings.page_size,
        select_fields=MEMBER_SELECT_FIELDS,
        updated_field=UPDATED_FIELD if updated_since is not None else None,
        updated_since=updated_since,
    )
    owned = engine is None
    engine = engine or RetrievalEngine.from_settings(settings, normalizer=Normalizer(MEMBER_SCHEMA))
    try:
        result = await engine.fetch_all(
            credentials,
            plan,
            strategy=strategy,
            cancel_event=cancel_event,
            include_raw=include_raw,
            count_field="CalAIM_MCO",
        )
    finally:
        if owned:
            await engine.close()

    logger.info(
        "member_distribution",
        extra={"value_counts": result.diagnostics.value_counts, "count": result.count},
    )
    return result
