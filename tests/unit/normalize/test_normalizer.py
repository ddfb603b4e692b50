"""Unit tests for the schema-driven normalizer."""

from __future__ import annotations

from calaim.records import CompositeRule, FieldRule, Normalizer, RecordSchema
from calaim.records.normalize import first_present, join_name

SCHEMA = RecordSchema(
    name="people",
    id_aliases=("person_id", "id"),
    fields=(
        FieldRule("id", ("person_id", "id")),
        FieldRule("first", ("First", "first_name"), default=""),
        FieldRule("last", ("Last", "last_name"), default=""),
        FieldRule("age", ("Age",), transform=int),
        FieldRule("city", ("City",), default="Nowhere"),
    ),
    composites=(
        CompositeRule(
            "full_name",
            lambda values, raw: join_name(values["first"], values["last"]),
            aliases=("Full_Name",),
            default="",
        ),
    ),
)


class TestNormalizer:
    """Test Normalizer functionality."""

    def test_first_present_alias_wins(self):
        record = Normalizer(SCHEMA).normalize({"First": "Ann", "first_name": "Annie"})

        assert record["first"] == "Ann"

    def test_blank_alias_falls_through(self):
        """Test that whitespace-only values count as missing."""
        record = Normalizer(SCHEMA).normalize({"First": "   ", "first_name": "Annie"})

        assert record["first"] == "Annie"

    def test_values_are_trimmed(self):
        record = Normalizer(SCHEMA).normalize({"First": "  Ann ", "Last": " Lee"})

        assert record["first"] == "Ann"
        assert record["full_name"] == "Ann Lee"

    def test_defaults(self):
        record = Normalizer(SCHEMA).normalize({})

        assert record["first"] == ""
        assert record["city"] == "Nowhere"
        assert record["age"] is None
        assert record["full_name"] == ""
        assert record.key is None

    def test_transform(self):
        assert Normalizer(SCHEMA).normalize({"Age": "42"})["age"] == 42

    def test_failing_transform_keeps_raw_value(self):
        """Test that a transform error never propagates."""
        assert Normalizer(SCHEMA).normalize({"Age": "forty"})["age"] == "forty"

    def test_composite_falls_back_to_alias(self):
        record = Normalizer(SCHEMA).normalize({"Full_Name": "Prince"})

        assert record["full_name"] == "Prince"

    def test_failing_composite_uses_default(self):
        def boom(values, raw):
            raise RuntimeError("nope")

        schema = RecordSchema(
            name="broken",
            fields=(),
            composites=(CompositeRule("x", boom, default="fallback"),),
        )

        assert Normalizer(schema).normalize({"a": 1})["x"] == "fallback"

    def test_passthrough_keeps_unconsumed_fields(self):
        """Test that unknown raw fields survive untouched."""
        record = Normalizer(SCHEMA).normalize({"First": "Ann", "Extra": {"nested": True}, "Blank": ""})

        assert record.passthrough == {"Extra": {"nested": True}, "Blank": ""}
        assert record["Extra"] == {"nested": True}
        assert "First" not in record.passthrough

    def test_key_derived_from_id_aliases(self):
        assert Normalizer(SCHEMA).normalize({"id": 7}).key == "7"
        assert Normalizer(SCHEMA).normalize({"person_id": "p1", "id": 7}).key == "p1"

    def test_explicit_key_wins(self):
        assert Normalizer(SCHEMA).normalize({"id": 7}, key="given").key == "given"

    def test_non_string_values(self):
        record = Normalizer(SCHEMA).normalize({"First": 12, "City": 0})

        assert record["first"] == 12
        assert record["city"] == 0

    def test_normalize_many_and_call(self):
        normalizer = Normalizer(SCHEMA)

        records = normalizer.normalize_many([{"id": "1"}, {"id": "2"}])

        assert [r.key for r in records] == ["1", "2"]
        assert normalizer({"id": "3"}).key == "3"


class TestCanonicalRecord:
    """Test mapping-style access to canonical records."""

    def test_resolved_values_shadow_passthrough(self):
        record = Normalizer(SCHEMA).normalize({"First": "Ann", "Other": 1})

        assert record.to_dict()["first"] == "Ann"
        assert record.to_dict()["Other"] == 1
        assert "first" in record
        assert "missing" not in record
        assert record.get("missing", "d") == "d"
        assert list(record.keys())[:2] == ["id", "first"]


class TestHelpers:
    """Test normalization helpers."""

    def test_first_present(self):
        assert first_present({"a": None, "b": " x "}, ("a", "b")) == "x"
        assert first_present({"a": ""}, ("a", "b")) is None

    def test_join_name(self):
        assert join_name(" Jane ", None, "  Doe ") == "Jane Doe"
        assert join_name("", "  ") == ""
