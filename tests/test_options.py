from __future__ import annotations

from skillmap_core.options import parse_options, question_options


def test_list_passthrough():
    assert parse_options(["A", "B"]) == ["A", "B"]


def test_json_string():
    assert parse_options('["Yes", "No"]') == ["Yes", "No"]


def test_comma_string():
    assert parse_options("red, green ,blue,") == ["red", "green", "blue"]


def test_option_objects_use_text():
    assert parse_options([{"text": "First"}, {"label": "Second"}]) == ["First", "Second"]


def test_missing_or_malformed_is_empty():
    assert parse_options(None) == []
    assert parse_options("") == []
    assert parse_options(42) == []


def test_question_options_falls_back_to_choices():
    assert question_options({"options": None, "choices": "x,y"}) == ["x", "y"]
    assert question_options({"options": "[]", "choices": []}) == []
