"""
tests/test_schema.py — Payload type tags and payload checks
============================================================
"""

from __future__ import annotations

import pytest

from gamify.database.models import PayloadType
from gamify.engine.schema import (
    build_dummy_payload,
    check_payload,
    matches_type,
    parse_schema,
)

SCHEMA = {
    "score": "number",
    "passed": "boolean",
    "quiz": "string",
    "tags": "array",
    "meta": "object",
}


class TestMatchesType:
    @pytest.mark.parametrize("value,tag", [
        ("x", PayloadType.STRING),
        (3, PayloadType.NUMBER),
        (2.5, PayloadType.NUMBER),
        (False, PayloadType.BOOLEAN),
        ([1, 2], PayloadType.ARRAY),
        ((1, 2), PayloadType.ARRAY),
        ({"a": 1}, PayloadType.OBJECT),
    ])
    def test_matches(self, value, tag):
        assert matches_type(value, tag)

    def test_bool_is_not_a_number(self):
        assert not matches_type(True, PayloadType.NUMBER)

    def test_list_is_not_an_object(self):
        assert not matches_type([], PayloadType.OBJECT)

    def test_none_matches_nothing(self):
        assert not any(matches_type(None, tag) for tag in PayloadType)

    def test_accepts_raw_tag_string(self):
        assert matches_type("x", "string")


class TestParseSchema:
    def test_valid_schema(self):
        parsed = parse_schema(SCHEMA)
        assert parsed["score"] is PayloadType.NUMBER
        assert parsed["meta"] is PayloadType.OBJECT

    def test_unknown_tag_rejected(self):
        with pytest.raises(ValueError, match="Unknown type"):
            parse_schema({"score": "integer"})

    def test_empty_field_name_rejected(self):
        with pytest.raises(ValueError):
            parse_schema({"": "string"})


class TestCheckPayload:
    def test_full_payload_ok(self):
        payload = {"score": 90, "passed": True, "quiz": "q1", "tags": [], "meta": {}}
        assert check_payload(SCHEMA, payload).ok

    def test_subset_payload_ok(self):
        assert check_payload(SCHEMA, {"score": 90}).ok

    def test_empty_payload_ok(self):
        assert check_payload(SCHEMA, {}).ok

    def test_undeclared_key_rejected(self):
        check = check_payload(SCHEMA, {"score": 90, "bonus": 1})
        assert not check.ok
        assert check.unknown_keys == ["bonus"]
        assert "bonus" in check.describe()

    def test_type_mismatch_rejected(self):
        check = check_payload(SCHEMA, {"score": "ninety"})
        assert not check.ok
        assert check.type_mismatches == {"score": "number"}
        assert "expected number" in check.describe()


class TestDummyPayload:
    def test_one_value_per_field(self):
        dummy = build_dummy_payload(SCHEMA)
        assert dummy == {
            "score": 0,
            "passed": False,
            "quiz": "dummy string",
            "tags": [],
            "meta": {},
        }

    def test_dummy_payload_passes_its_own_schema(self):
        assert check_payload(SCHEMA, build_dummy_payload(SCHEMA)).ok

    def test_containers_are_fresh(self):
        a = build_dummy_payload({"tags": "array"})
        b = build_dummy_payload({"tags": "array"})
        assert a["tags"] is not b["tags"]
