"""Data models for the retrieval engine.

Architecture:
    This module exports the Pydantic v2 models used throughout the library.
    Inputs (credentials, query plans) and outputs (canonical records) are
    frozen so nothing downstream can mutate them during a retrieval.

Model Categories:
    - Inputs: Credentials, QueryPlan
    - Auth: AccessToken
    - Output: CanonicalRecord (RawRecord is a plain ``dict``)
"""

from .credentials import AccessToken, Credentials
from .query import MAX_PAGE_SIZE, QueryPlan
from .record import CanonicalRecord, RawRecord

__all__ = [
    "AccessToken",
    "Credentials",
    "QueryPlan",
    "MAX_PAGE_SIZE",
    "CanonicalRecord",
    "RawRecord",
]
