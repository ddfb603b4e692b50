"""Schema-driven record normalizer.

The normalizer is pure and total: it performs no I/O and never raises on
missing or odd-looking fields. Every raw record yields a best-effort
CanonicalRecord.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..models import CanonicalRecord, RawRecord
from .schema import RecordSchema

logger = logging.getLogger(__name__)


def is_empty(value: Any) -> bool:
    """None and whitespace-only strings count as missing."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def collapse_whitespace(value: str) -> str:
    return " ".join(value.split())


def first_present(raw: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """Return the first non-empty alias value (cleaned), or None."""
    for alias in aliases:
        value = raw.get(alias)
        if not is_empty(value):
            return clean(value)
    return None


def join_name(*parts: Any) -> str:
    """Join name parts with single spaces, skipping empties."""
    return collapse_whitespace(" ".join(str(p) for p in parts if not is_empty(p)))


class Normalizer:
    """Maps raw records onto a RecordSchema."""

    def __init__(self, schema: RecordSchema) -> None:
        self._schema = schema
        self._consumed = schema.consumed_aliases

    @property
    def schema(self) -> RecordSchema:
        return self._schema

    def normalize(self, raw: RawRecord, key: str | None = None) -> CanonicalRecord:
        """Normalize one raw record.

        Args:
            raw: Upstream record
            key: Dedup key when already known; otherwise derived from the
                schema's id aliases

        Returns:
            CanonicalRecord with resolved values and untouched passthrough
        """
        values: dict[str, Any] = {}

        for rule in self._schema.fields:
            value = first_present(raw, rule.aliases)
            if value is None:
                values[rule.name] = rule.default
                continue
            if rule.transform is not None:
                try:
                    value = rule.transform(value)
                except Exception as e:
                    logger.debug(f"Transform for {rule.name} failed, keeping raw value: {e}")
            values[rule.name] = value

        for composite in self._schema.composites:
            try:
                value = composite.build(values, raw)
            except Exception as e:
                logger.debug(f"Composite {composite.name} failed: {e}")
                value = None
            if is_empty(value):
                value = first_present(raw, composite.aliases)
            values[composite.name] = composite.default if is_empty(value) else value

        if key is None and self._schema.id_aliases:
            found = first_present(raw, self._schema.id_aliases)
            key = str(found) if found is not None else None

        passthrough = {k: v for k, v in raw.items() if k not in self._consumed}
        return CanonicalRecord(key=key, values=values, passthrough=passthrough)

    def normalize_many(self, records: Iterable[RawRecord]) -> list[CanonicalRecord]:
        return [self.normalize(record) for record in records]

    def __call__(self, raw: RawRecord) -> CanonicalRecord:
        return self.normalize(raw)
