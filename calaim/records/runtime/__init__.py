"""Runtime orchestration components."""

from .auth import TokenCache, TokenProvider, get_token_cache
from .count import CountEstimator
from .engine import RetrievalEngine, fetch_all, fetch_all_members

__all__ = [
    "RetrievalEngine",
    "fetch_all",
    "fetch_all_members",
    "TokenProvider",
    "TokenCache",
    "get_token_cache",
    "CountEstimator",
]
