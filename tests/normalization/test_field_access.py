"""
Field Access Tests

The same logical field arrives as STATUS, status, Status or camelCase
depending on the remote method. Resolution must not care.
"""

import math

import pytest
from hypothesis import given, strategies as st

from taskbridge.contracts import MISSING
from taskbridge.fields import key_variants, normalize_number, resolve, to_camel_case_key


field_names = st.from_regex(r'[A-Z]{2,8}(_[A-Z]{2,8}){0,2}', fullmatch=True)
scalars = st.one_of(st.none(), st.integers(), st.text(max_size=20))


class TestResolve:

    @pytest.mark.parametrize("variant", ["STATUS", "status", "Status"])
    def test_casing_variants_resolve_to_same_value(self, variant):
        assert resolve({variant: "3"}, "STATUS") == "3"

    @pytest.mark.parametrize("key", ["Created_Date", "created_DATE", "CreatedDate", "CREATEDDATE"])
    def test_any_other_casing_resolves(self, key):
        assert resolve({key: "2024-05-30"}, "CREATED_DATE") == "2024-05-30"

    def test_exact_spelling_wins_over_folded_match(self):
        assert resolve({"Status": "2", "status": "1"}, "STATUS") == "1"

    def test_camel_case_variant(self):
        assert resolve({"createdDate": "2024-05-30"}, "CREATED_DATE") == "2024-05-30"

    def test_exact_key_wins_over_other_variants(self):
        record = {"ID": "1", "id": "2"}
        assert resolve(record, "ID") == "1"
        assert resolve(record, "id") == "2"

    def test_present_null_is_returned(self):
        assert resolve({"deadline": None}, "DEADLINE") is None

    def test_absent_field_is_missing(self):
        assert resolve({"ID": "1"}, "TITLE") is MISSING

    @pytest.mark.parametrize("record", [None, [], "ID", 42])
    def test_non_mapping_is_missing(self, record):
        assert resolve(record, "ID") is MISSING

    def test_empty_key_is_missing(self):
        assert resolve({"": 1}, "") is MISSING

    @given(name=field_names, value=scalars)
    def test_every_spelling_resolves(self, name, value):
        canonical = name.upper()
        for spelling in key_variants(canonical):
            assert resolve({spelling: value}, canonical) == value

    @given(name=field_names)
    def test_variants_are_unique(self, name):
        variants = key_variants(name)
        assert len(variants) == len(set(variants))


class TestCamelCase:

    def test_snake_to_camel(self):
        assert to_camel_case_key("CREATED_DATE") == "createdDate"
        assert to_camel_case_key("tasks_count") == "tasksCount"

    def test_single_word(self):
        assert to_camel_case_key("TITLE") == "title"

    def test_empty(self):
        assert to_camel_case_key("") == ""


class TestNormalizeNumber:

    @pytest.mark.parametrize("value,expected", [
        (5, 5),
        (0, 0),
        (50.0, 50),
        ("5", 5),
        (" 42 ", 42),
        ("12abc", 12),
        ("-3", -3),
    ])
    def test_parses(self, value, expected):
        assert normalize_number(value) == expected

    @pytest.mark.parametrize("value", [
        None, "", "   ", "abc", True, False, math.nan, math.inf, [], {}, "e5",
    ])
    def test_rejects(self, value):
        assert normalize_number(value) is None

    def test_oversized_digit_string_is_rejected(self):
        assert normalize_number("9" * 5000) is None
