"""Core components."""

from .enums import FilterKind, PartialReason
from .exceptions import (
    AuthError,
    ConfigurationError,
    CountEstimationError,
    PartitionFetchError,
    RecordsError,
    UpstreamError,
)

__all__ = [
    "FilterKind",
    "PartialReason",
    "RecordsError",
    "ConfigurationError",
    "UpstreamError",
    "AuthError",
    "PartitionFetchError",
    "CountEstimationError",
]
