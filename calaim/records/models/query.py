"""Query plan model describing one logical "fetch everything" request."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Hard per-query row cap enforced by the upstream list endpoint
MAX_PAGE_SIZE = 1000


class QueryPlan(BaseModel):
    """Describes a complete-dataset retrieval for one table.

    Attributes:
        table: Upstream table name
        partition_field: Discriminator field used to split the query
        partition_values: Ordered values of ``partition_field`` to query
        page_size: Rows requested per page (upstream caps this at 1000)
        additional_where: Extra predicate ANDed into every filter
        select_fields: Columns to request (``q.select``); empty means all
        updated_field: Modification-timestamp column for incremental pulls
        updated_since: Only rows with ``updated_field`` after this instant
    """

    table: str = Field(..., min_length=1)
    partition_field: str | None = None
    partition_values: tuple[str, ...] = ()
    page_size: int = Field(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    additional_where: str | None = None
    select_fields: tuple[str, ...] = ()
    updated_field: str | None = None
    updated_since: datetime | None = None

    @field_validator("partition_values")
    @classmethod
    def dedupe_values(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Drop repeated values while keeping caller order."""
        return tuple(dict.fromkeys(v))

    @field_validator("partition_field", "additional_where", "updated_field")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_incremental(self) -> QueryPlan:
        if self.updated_since is not None and self.updated_field is None:
            raise ValueError("updated_since requires updated_field")
        return self

    @property
    def is_partitioned(self) -> bool:
        return self.partition_field is not None and bool(self.partition_values)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)
