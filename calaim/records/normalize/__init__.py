"""Record normalization: raw field-name variants into one canonical shape."""

from .members import (
    MEMBER_SCHEMA,
    MEMBERS_TABLE,
    MCO_FIELD,
    MCO_PARTITIONS,
    normalize_member,
    normalize_social_worker_name,
)
from .normalizer import Normalizer, first_present, join_name
from .schema import CompositeRule, FieldRule, RecordSchema

__all__ = [
    "Normalizer",
    "RecordSchema",
    "FieldRule",
    "CompositeRule",
    "first_present",
    "join_name",
    "MEMBER_SCHEMA",
    "MEMBERS_TABLE",
    "MCO_FIELD",
    "MCO_PARTITIONS",
    "normalize_member",
    "normalize_social_worker_name",
]
