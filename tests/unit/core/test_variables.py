"""Tests for placeholder extraction."""

import pytest

from midnight_admin.core.templates.variables import (
    coerce_variables,
    extract_variables,
    find_missing_variables,
    get_all_variables,
)


@pytest.mark.unit
class TestExtractVariables:
    def test_order_of_first_occurrence(self) -> None:
        text = "Hi {{name}}, about {{topic}}. Bye {{name}}."
        assert extract_variables(text) == ["name", "topic"]

    def test_whitespace_inside_braces(self) -> None:
        assert extract_variables("{{ name }} and {{name}} and {{  other\t}}") == ["name", "other"]

    def test_malformed_tokens_ignored(self) -> None:
        assert extract_variables("{{1bad}} {{ok_1}} {{}}") == ["ok_1"]

    def test_unbalanced_and_hyphenated(self) -> None:
        assert extract_variables("{{open and {{user-name}} and {{_private}}") == ["_private"]

    def test_empty_input(self) -> None:
        assert extract_variables("") == []
        assert extract_variables(None) == []

    def test_get_all_variables_unions_slots_in_order(self) -> None:
        subject = "Welcome {{user_name}}"
        html = "<p>{{user_name}} meet {{match_name}}</p>"
        text = "{{match_name}} / {{footer}}"
        assert get_all_variables(subject, html, text) == ["user_name", "match_name", "footer"]

    def test_get_all_variables_skips_missing_slot(self) -> None:
        assert get_all_variables("{{a}}", None, "{{b}}") == ["a", "b"]


@pytest.mark.unit
class TestMissingAndCoercion:
    def test_missing_treats_none_and_empty_as_absent(self) -> None:
        values = {"a": "x", "b": "", "c": None, "d": 0}
        assert find_missing_variables(["a", "b", "c", "d", "e"], values) == ["b", "c", "e"]

    def test_coerce_list(self) -> None:
        assert coerce_variables(["a", "b", "a", 3, "1x"]) == ["a", "b"]

    def test_coerce_dict_keys(self) -> None:
        assert coerce_variables({"name": {"type": "string"}, "age": {}}) == ["name", "age"]

    def test_coerce_json_text(self) -> None:
        assert coerce_variables('["x", "y"]') == ["x", "y"]
        assert coerce_variables(b'{"z": 1}') == ["z"]

    def test_coerce_garbage(self) -> None:
        assert coerce_variables(None) == []
        assert coerce_variables("not json") == []
        assert coerce_variables(42) == []
