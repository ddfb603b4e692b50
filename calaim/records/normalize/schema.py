"""Declarative record schemas.

A schema lists, for every canonical field, the raw field-name variants it
can be read from (in priority order), a default, and an optional
transform. Composite rules derive fields from already-resolved values.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

Transform = Callable[[Any], Any]
Builder = Callable[[Mapping[str, Any], Mapping[str, Any]], Any]


@dataclass(frozen=True)
class FieldRule:
    """Canonical field resolved from raw aliases.

    Attributes:
        name: Canonical field name
        aliases: Raw field names, first non-empty wins
        default: Value used when no alias is present
        transform: Applied to the resolved (non-default) value
    """

    name: str
    aliases: tuple[str, ...]
    default: Any = None
    transform: Transform | None = None


@dataclass(frozen=True)
class CompositeRule:
    """Canonical field derived from other fields.

    Attributes:
        name: Canonical field name
        build: ``build(values, raw)`` where ``values`` holds the fields
            resolved so far; an empty result falls through to ``aliases``
        aliases: Raw field names used when ``build`` yields nothing
        default: Value used when neither ``build`` nor ``aliases`` yield one
    """

    name: str
    build: Builder
    aliases: tuple[str, ...] = ()
    default: Any = None


@dataclass(frozen=True)
class RecordSchema:
    """Canonical shape for one upstream table."""

    name: str
    fields: tuple[FieldRule, ...]
    composites: tuple[CompositeRule, ...] = ()
    id_aliases: tuple[str, ...] = ()

    @property
    def consumed_aliases(self) -> frozenset[str]:
        """Raw field names read by any rule (excluded from passthrough)."""
        names: set[str] = set()
        for rule in self.fields:
            names.update(rule.aliases)
        for composite in self.composites:
            names.update(composite.aliases)
        return frozenset(names)
