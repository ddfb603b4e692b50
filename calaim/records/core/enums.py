"""Core enumerations shared across the retrieval engine.

Design Decisions:
    - String enums: serialize directly into diagnostics and log ``extra`` fields
    - PartialReason distinguishes "stopped on error" from "stopped on the
      safety cap" so callers can decide whether to retry or raise the cap
"""

from enum import Enum


class PartialReason(str, Enum):
    """Why a partition (or a whole retrieval) may be incomplete."""

    NONE = "none"
    HTTP_ERROR = "http_error"
    SAFETY_CAP = "safety_cap"
    CANCELLED = "cancelled"

    @property
    def is_partial(self) -> bool:
        return self is not PartialReason.NONE


class FilterKind(str, Enum):
    """Role of a filter inside a partition plan."""

    VALUE = "value"
    CATCH_ALL = "catch_all"
    UNPARTITIONED = "unpartitioned"
