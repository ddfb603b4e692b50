"""CalAIM Records - complete-dataset retrieval from row-capped REST tables."""

from .core import (
    AuthError,
    ConfigurationError,
    CountEstimationError,
    FilterKind,
    PartialReason,
    PartitionFetchError,
    RecordsError,
    UpstreamError,
)
from .core.config import RecordsSettings, credentials_from_env, get_settings, reset_settings
from .models import AccessToken, CanonicalRecord, Credentials, QueryPlan, RawRecord
from .normalize import (
    MEMBER_SCHEMA,
    CompositeRule,
    FieldRule,
    Normalizer,
    RecordSchema,
    normalize_member,
    normalize_social_worker_name,
)
from .runtime import (
    CountEstimator,
    RetrievalEngine,
    TokenCache,
    TokenProvider,
    fetch_all,
    fetch_all_members,
    get_token_cache,
)
from .runtime.partitioning import (
    DiscoverThenPartition,
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

__version__ = "0.1.0"

__all__ = [
    # Engine
    "RetrievalEngine",
    "fetch_all",
    "fetch_all_members",
    # Components
    "TokenProvider",
    "TokenCache",
    "get_token_cache",
    "PartitionPlanner",
    "PartitionStrategy",
    "EnumeratedValues",
    "DiscoverThenPartition",
    "PageFetcher",
    "RecordAggregator",
    "CountEstimator",
    "Normalizer",
    # Models
    "Credentials",
    "AccessToken",
    "QueryPlan",
    "RawRecord",
    "CanonicalRecord",
    "Filter",
    "PartitionPolicy",
    "PartitionResult",
    "RetrievalDiagnostics",
    "RetrievalResult",
    # Schemas
    "RecordSchema",
    "FieldRule",
    "CompositeRule",
    "MEMBER_SCHEMA",
    "normalize_member",
    "normalize_social_worker_name",
    # Enums
    "PartialReason",
    "FilterKind",
    # Exceptions
    "RecordsError",
    "ConfigurationError",
    "UpstreamError",
    "AuthError",
    "PartitionFetchError",
    "CountEstimationError",
    # Config
    "RecordsSettings",
    "get_settings",
    "reset_settings",
    "credentials_from_env",
]
