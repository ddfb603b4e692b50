"""Canonical record model."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

RawRecord = dict[str, Any]


class CanonicalRecord(BaseModel):
    """Normalized, alias-resolved representation of one upstream record.

    ``values`` holds the fields resolved by a record schema; ``passthrough``
    keeps every raw field the schema did not consume. Mapping-style reads
    look in ``values`` first, then ``passthrough``.
    """

    key: str | None = None
    values: dict[str, Any] = Field(default_factory=dict)
    passthrough: dict[str, Any] = Field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        if name in self.values:
            return self.values[name]
        return self.passthrough[name]

    def __contains__(self, name: object) -> bool:
        return name in self.values or name in self.passthrough

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def keys(self) -> Iterator[str]:
        yield from self.values
        for name in self.passthrough:
            if name not in self.values:
                yield name

    def to_dict(self) -> dict[str, Any]:
        """Flatten into one mapping; resolved values win over passthrough."""
        return {**self.passthrough, **self.values}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], key: str | None = None) -> CanonicalRecord:
        return cls(key=key, values=dict(data))

    model_config = ConfigDict(frozen=True)
