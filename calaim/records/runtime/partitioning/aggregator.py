"""Merging and deduplicating partition results.

Records are concatenated in partition order, then page order, and keyed by
the first non-empty identifier alias. On a key collision the first record
seen wins; later duplicates are dropped, never merged field by field.

Records with no identifier get a synthetic unique key. They are therefore
never coalesced, even when they are true duplicates of each other: merging
key-less rows would risk collapsing distinct records, so they are kept and
counted in ``MergeStats.synthetic_keys`` instead.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from typing import NamedTuple

from ...models import RawRecord
from .definitions import Filter, MergeStats

DEFAULT_ID_ALIASES: tuple[str, ...] = ("client_ID2", "Client_ID2", "clientId2", "id", "ID")

SYNTHETIC_PREFIX = "synthetic:"


class KeyedRecord(NamedTuple):
    key: str
    record: RawRecord
    synthetic: bool


class RecordAggregator:
    """Merges partitions into one deduplicated record list."""

    def __init__(self, id_aliases: Sequence[str] = DEFAULT_ID_ALIASES) -> None:
        """Initialize aggregator.

        Args:
            id_aliases: Identifier field names, in priority order
        """
        if not id_aliases:
            raise ValueError("id_aliases cannot be empty")
        self._id_aliases = tuple(id_aliases)

    @property
    def id_aliases(self) -> tuple[str, ...]:
        return self._id_aliases

    def primary_key(self, record: RawRecord) -> str | None:
        """Return the first non-empty identifier, or None."""
        for alias in self._id_aliases:
            value = record.get(alias)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                return text
        return None

    def merge(self, partitions: Iterable[tuple[Filter, Sequence[RawRecord]]]) -> list[RawRecord]:
        """Concatenate partitions in order and drop later duplicates.

        Args:
            partitions: ``(filter, records)`` pairs in merge order

        Returns:
            Unique raw records, first occurrence kept
        """
        keyed, _ = self.merge_keyed(partitions)
        return [entry.record for entry in keyed]

    def merge_keyed(
        self, partitions: Iterable[tuple[Filter, Sequence[RawRecord]]]
    ) -> tuple[list[KeyedRecord], MergeStats]:
        """Merge like ``merge`` and also return keys and bookkeeping."""
        unique: dict[str, KeyedRecord] = {}
        raw_total = 0
        synthetic = 0

        for _filter, records in partitions:
            for record in records:
                raw_total += 1
                key = self.primary_key(record)
                if key is None:
                    synthetic += 1
                    key = f"{SYNTHETIC_PREFIX}{uuid.uuid4().hex}"
                    unique[key] = KeyedRecord(key, record, True)
                elif key not in unique:
                    unique[key] = KeyedRecord(key, record, False)

        keyed = list(unique.values())
        stats = MergeStats(
            raw_total=raw_total,
            unique_total=len(keyed),
            duplicates_dropped=raw_total - len(keyed),
            synthetic_keys=synthetic,
        )
        return keyed, stats
