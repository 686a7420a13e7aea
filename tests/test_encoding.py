"""
Parameter Encoding Tests
"""

from urllib.parse import parse_qsl

from taskbridge.encoding import encode_params, flatten_params


class TestFlattenParams:

    def test_nested_tree(self):
        tree = {
            "filter": {"RESPONSIBLE_ID": 13, ">DEADLINE": "2024-06-01"},
            "select": ["ID", "TITLE"],
            "order": {"DEADLINE": "ASC"},
            "start": 0,
        }

        assert flatten_params(tree) == [
            ("filter[RESPONSIBLE_ID]", "13"),
            ("filter[>DEADLINE]", "2024-06-01"),
            ("select[0]", "ID"),
            ("select[1]", "TITLE"),
            ("order[DEADLINE]", "ASC"),
            ("start", "0"),
        ]

    def test_deep_nesting(self):
        assert flatten_params({"a": {"b": [{"c": 1}]}}) == [("a[b][0][c]", "1")]

    def test_none_is_skipped_and_bools_are_words(self):
        assert flatten_params({"x": None, "y": True, "z": False}) == [("y", "true"), ("z", "false")]

    def test_non_mapping_is_empty(self):
        assert flatten_params(None) == []
        assert flatten_params(["a"]) == []


class TestEncodeParams:

    def test_brackets_and_values_are_escaped(self):
        encoded = encode_params({"filter": {">DEADLINE": "2024-06-01 10:00"}})
        assert encoded == "filter%5B%3EDEADLINE%5D=2024-06-01%2010%3A00"

    def test_decodes_back_to_pairs(self):
        tree = {"filter": {"TITLE": "a&b=c"}, "select": ["ID"]}
        assert parse_qsl(encode_params(tree)) == flatten_params(tree)

    def test_empty(self):
        assert encode_params({}) == ""
