"""Page fetching within one partition.

This module provides the PageFetcher that drains every page of a single
partition filter. Pages are requested strictly in order: whether page N+1
is needed depends on how many rows page N returned.

State machine (per partition):
    Requesting(page) -> cancelled?          -> Done(partial, CANCELLED)
                     -> page > max_pages?   -> Done(partial, SAFETY_CAP)
                     -> request failed      -> Done(partial, HTTP_ERROR)
                     -> 0 rows              -> Done(complete)
                     -> rows < page_size    -> Done(complete)
                     -> rows == page_size   -> Requesting(page + 1)

Failures never discard earlier pages: the partition degrades to a partial
result instead of aborting the retrieval.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from time import perf_counter

import aiohttp

from ...core.enums import PartialReason
from ...core.exceptions import PartitionFetchError
from ...models import AccessToken, RawRecord
from ...utils.http import HTTPClient
from ..endpoints import page_query, records_path
from .definitions import Filter, PartitionPolicy, PartitionResult
from .telemetry import (
    log_page_fetched,
    log_partition_completed,
    log_partition_error,
    log_safety_cap_reached,
)


class PageFetcher:
    """Fetches all pages of one partition filter."""

    def __init__(
        self,
        http: HTTPClient,
        base_url: str,
        policy: PartitionPolicy | None = None,
    ) -> None:
        """Initialize page fetcher.

        Args:
            http: HTTP client for page requests
            base_url: Upstream base URL (without ``/rest/v2``)
            policy: Paging policy (page size and safety cap)
        """
        self._http = http
        self._base_url = base_url
        self._policy = policy or PartitionPolicy()

    @property
    def policy(self) -> PartitionPolicy:
        return self._policy

    async def fetch_partition(
        self,
        token: AccessToken,
        table: str,
        filter: Filter,
        page_size: int | None = None,
        *,
        select_fields: Sequence[str] = (),
        group_by: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PartitionResult:
        """Drain a partition into memory.

        Args:
            token: Bearer token
            table: Upstream table
            filter: Partition filter
            page_size: Rows per page (defaults to the policy's page size)
            select_fields: Columns to request; empty means all
            group_by: Optional ``q.groupBy`` column
            cancel_event: When set, no further page is requested

        Returns:
            PartitionResult with all rows gathered and the terminal reason
        """
        result = PartitionResult(filter=filter)
        async for page in self.iter_pages(
            token,
            table,
            filter,
            page_size,
            select_fields=select_fields,
            group_by=group_by,
            cancel_event=cancel_event,
            result=result,
        ):
            result.records.extend(page)

        log_partition_completed(table=table, result=result)
        return result

    async def iter_pages(
        self,
        token: AccessToken,
        table: str,
        filter: Filter,
        page_size: int | None = None,
        *,
        select_fields: Sequence[str] = (),
        group_by: str | None = None,
        cancel_event: asyncio.Event | None = None,
        result: PartitionResult | None = None,
    ) -> AsyncIterator[list[RawRecord]]:
        """Yield a partition's pages as they arrive.

        Streaming variant of ``fetch_partition``. Pass ``result`` to observe
        ``pages_requested`` and the terminal ``reason`` once iteration ends;
        rows are not accumulated into it.
        """
        state = result if result is not None else PartitionResult(filter=filter)
        size = page_size or self._policy.page_size
        page_number = 1
        rows_seen = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                state.reason = PartialReason.CANCELLED
                return

            if page_number > self._policy.max_pages:
                state.reason = PartialReason.SAFETY_CAP
                log_safety_cap_reached(
                    table=table,
                    filter=filter,
                    max_pages=self._policy.max_pages,
                    page_size=size,
                    rows=rows_seen,
                )
                return

            started = perf_counter()
            state.pages_requested += 1
            try:
                rows = await self._fetch_page(
                    token,
                    table,
                    filter,
                    size,
                    page_number,
                    select_fields=select_fields,
                    group_by=group_by,
                )
            except PartitionFetchError as e:
                state.reason = PartialReason.HTTP_ERROR
                state.status_code = e.status_code
                state.error = str(e)
                log_partition_error(
                    table=table,
                    filter=filter,
                    page_number=page_number,
                    status_code=e.status_code,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                return

            log_page_fetched(
                table=table,
                filter=filter,
                page_number=page_number,
                rows=len(rows),
                latency_ms=(perf_counter() - started) * 1000.0,
            )

            if not rows:
                return

            rows_seen += len(rows)
            yield rows

            # A short page is the last page
            if len(rows) < size:
                return

            page_number += 1

    async def _fetch_page(
        self,
        token: AccessToken,
        table: str,
        filter: Filter,
        page_size: int,
        page_number: int,
        *,
        select_fields: Sequence[str],
        group_by: str | None,
    ) -> list[RawRecord]:
        url = f"{self._base_url}{records_path(table)}"
        params = page_query(
            filter.where,
            page_size=page_size,
            page_number=page_number,
            select_fields=select_fields,
            group_by=group_by,
        )
        headers = {"Authorization": token.authorization, "Content-Type": "application/json"}

        try:
            response = await self._http.get(url, params=params, headers=headers)
        except (aiohttp.ClientError, TimeoutError) as e:
            raise PartitionFetchError(
                f"Page request failed: {type(e).__name__}: {e}", page_number=page_number
            ) from e

        if not response.ok:
            raise PartitionFetchError(
                f"Page request returned {response.status}: {response.text[:200]}",
                status_code=response.status,
                page_number=page_number,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise PartitionFetchError(
                "Page response is not valid JSON",
                status_code=response.status,
                page_number=page_number,
            ) from e

        # Only an explicit Result (empty or null) signals exhaustion
        if not isinstance(payload, dict) or "Result" not in payload:
            raise PartitionFetchError(
                "Page response has no Result",
                status_code=response.status,
                page_number=page_number,
            )
        rows = payload["Result"]
        if rows is None:
            rows = []
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise PartitionFetchError(
                "Page response has a malformed Result",
                status_code=response.status,
                page_number=page_number,
            )
        return rows
