"""Tests for tolerant parsing of model responses."""

from lumenclew.response_parser import (
    parse_array_slice,
    parse_model_response,
    parse_objects,
    parse_whole,
)


class TestParseWhole:
    def test_array(self):
        assert parse_whole('[{"id": "a"}]') == [{"id": "a"}]

    def test_wrapped_array(self):
        assert parse_whole('{"translations": [{"id": "a"}]}') == [{"id": "a"}]

    def test_single_object(self):
        assert parse_whole('{"id": "a"}') == [{"id": "a"}]

    def test_prose_fails(self):
        assert parse_whole("Here you go: [...]") is None


class TestParseArraySlice:
    def test_array_inside_prose(self):
        text = 'Sure! Here are the translations:\n```json\n[{"id": "a"}, {"id": "b"}]\n```\nHope this helps.'
        assert parse_array_slice(text) == [{"id": "a"}, {"id": "b"}]

    def test_no_brackets(self):
        assert parse_array_slice('{"id": "a"}') is None


class TestParseObjects:
    def test_skips_malformed_objects(self):
        text = '{"id": "a", "plainLanguage": "ok"} then {"id": "b", broken} and {"id": "c"}'
        assert parse_objects(text) == [{"id": "a", "plainLanguage": "ok"}, {"id": "c"}]

    def test_braces_inside_strings(self):
        text = 'noise {"id": "a", "context": "use {curly} braces"} noise'
        assert parse_objects(text) == [{"id": "a", "context": "use {curly} braces"}]

    def test_nothing_found(self):
        assert parse_objects("no json here") is None


class TestParseModelResponse:
    def test_falls_through_tiers(self):
        text = 'Result: {"id": "a"} [broken'
        assert parse_model_response(text) == [{"id": "a"}]

    def test_all_tiers_fail(self):
        assert parse_model_response("I could not translate these.") == []
