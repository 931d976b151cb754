"""
Tests for reply parsing.
"""

import pytest

from clip_insight.core.categories import Category
from clip_insight.core.errors import ErrorKind, MalformedReplyError
from clip_insight.core.models import GroupSuggestion
from clip_insight.core.replies import (
    load_json_object,
    parse_classification,
    parse_groups,
    parse_reusable_prompt,
)


class TestLoadJsonObject:

    def test_plain_object(self):
        assert load_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_object(self):
        assert load_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    @pytest.mark.parametrize("content", [None, "", "   ", "not json", "[1, 2]", "42"])
    def test_rejects_non_objects(self, content):
        with pytest.raises(MalformedReplyError) as excinfo:
            load_json_object(content)
        assert excinfo.value.kind == ErrorKind.MALFORMED_REPLY

    def test_deeply_nested_reply_is_malformed(self):
        with pytest.raises(MalformedReplyError, match="not valid JSON"):
            load_json_object('{"a":' * 100000)


class TestParseClassification:

    def test_category_and_summary(self):
        category, summary = parse_classification('{"category": "Code", "summary": " A loop. "}')
        assert category == Category.CODE
        assert summary == "A loop."

    def test_summary_optional(self):
        assert parse_classification('{"category": "link"}') == (Category.LINK, None)

    def test_unknown_category_is_malformed(self):
        with pytest.raises(MalformedReplyError, match="Unknown category"):
            parse_classification('{"category": "poem"}')

    def test_missing_category_is_malformed(self):
        with pytest.raises(MalformedReplyError, match="missing 'category'"):
            parse_classification('{"summary": "x"}')

    def test_non_string_summary_is_malformed(self):
        with pytest.raises(MalformedReplyError, match="summary"):
            parse_classification('{"category": "text", "summary": 3}')


class TestParseReusablePrompt:

    def test_reusable_with_tags(self):
        reusable, tags = parse_reusable_prompt('{"reusable": true, "tags": ["Writing", "email", "writing"]}')
        assert reusable is True
        assert tags == ("writing", "email")

    def test_not_reusable(self):
        assert parse_reusable_prompt('{"reusable": false, "tags": []}') == (False, ())

    def test_non_boolean_flag_is_malformed(self):
        with pytest.raises(MalformedReplyError):
            parse_reusable_prompt('{"reusable": "yes"}')

    def test_non_string_tags_are_malformed(self):
        with pytest.raises(MalformedReplyError):
            parse_reusable_prompt('{"reusable": true, "tags": [1]}')


class TestParseGroups:

    def test_valid_reply(self):
        reply = '{"groups": [{"label": "Links", "members": [0, 2]}, {"label": "Code", "members": [1]}]}'

        groups = parse_groups(reply, 3)

        assert groups == [
            GroupSuggestion(label="Links", members=(0, 2)),
            GroupSuggestion(label="Code", members=(1,)),
        ]

    def test_out_of_range_index_is_malformed(self):
        reply = '{"groups": [{"label": "A", "members": [0, 1, 3]}]}'
        with pytest.raises(MalformedReplyError, match="index 3"):
            parse_groups(reply, 3)

    def test_negative_index_is_malformed(self):
        reply = '{"groups": [{"label": "A", "members": [-1, 0]}]}'
        with pytest.raises(MalformedReplyError):
            parse_groups(reply, 1)

    def test_duplicate_index_is_malformed(self):
        reply = '{"groups": [{"label": "A", "members": [0, 1]}, {"label": "B", "members": [1]}]}'
        with pytest.raises(MalformedReplyError, match="more than one group"):
            parse_groups(reply, 2)

    def test_missing_index_is_malformed(self):
        reply = '{"groups": [{"label": "A", "members": [0]}]}'
        with pytest.raises(MalformedReplyError, match="ungrouped"):
            parse_groups(reply, 2)

    @pytest.mark.parametrize("reply", [
        '{"groups": {}}',
        '{"groups": [1]}',
        '{"groups": [{"members": [0]}]}',
        '{"groups": [{"label": " ", "members": [0]}]}',
        '{"groups": [{"label": "A", "members": []}]}',
        '{"groups": [{"label": "A", "members": ["0"]}]}',
        '{"groups": [{"label": "A", "members": [true]}]}',
    ])
    def test_schema_violations_are_malformed(self, reply):
        with pytest.raises(MalformedReplyError):
            parse_groups(reply, 1)
