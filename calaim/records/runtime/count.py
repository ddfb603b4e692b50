"""Best-effort aggregate row count for monitoring."""

from __future__ import annotations

import logging

from ..core.exceptions import CountEstimationError
from ..models import AccessToken
from ..utils.http import HTTPClient
from .endpoints import COUNT_SELECT, count_query, records_path

logger = logging.getLogger(__name__)


class CountEstimator:
    """Issues ``q.select=COUNT(*)`` queries.

    The estimate is for logging and sanity checks only. Completeness comes
    from draining every partition, never from this number.
    """

    def __init__(self, http: HTTPClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url

    async def estimate_count(
        self,
        token: AccessToken,
        table: str,
        where: str | None = None,
    ) -> int:
        """Return the upstream row count, or 0 on any failure. Never raises."""
        try:
            return await self._count(token, table, where)
        except Exception as e:
            logger.warning(
                "count_estimation_failed",
                extra={
                    "table": table,
                    "where": where,
                    "error_type": type(e).__name__,
                    "error_message": str(e)[:500],
                },
            )
            return 0

    async def _count(self, token: AccessToken, table: str, where: str | None) -> int:
        response = await self._http.get(
            f"{self._base_url}{records_path(table)}",
            params=count_query(where),
            headers={"Authorization": token.authorization, "Content-Type": "application/json"},
        )
        if not response.ok:
            raise CountEstimationError(
                f"Count query failed: {response.status}", status_code=response.status
            )
        try:
            rows = response.json()["Result"]
            value = rows[0][COUNT_SELECT]
            return int(value)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CountEstimationError(f"Malformed count response: {e}") from e
