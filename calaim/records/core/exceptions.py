"""Custom exception hierarchy."""

from __future__ import annotations


class RecordsError(Exception):
    """Base exception for all library errors."""

    pass


class ConfigurationError(RecordsError):
    """Required configuration (credentials, base URL) is missing or invalid."""

    pass


class UpstreamError(RecordsError):
    """Error returned by the upstream REST platform."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(UpstreamError):
    """Token endpoint rejected the request or could not be reached.

    Fatal for a retrieval. Carries the upstream status and body so operators
    can tell bad credentials (4xx) from an unavailable platform (5xx/None).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.body = body


class PartitionFetchError(UpstreamError):
    """A page request failed in the middle of draining a partition.

    Recovered locally by the page fetcher: the partition stops early and
    keeps the pages fetched so far.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        page_number: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.page_number = page_number


class CountEstimationError(UpstreamError):
    """Aggregate COUNT query failed. Always recovered; the estimate becomes 0."""

    pass
