import json

import pytest

from topic_console.explorer.presenter import (
    ELLIPSIS,
    ExpansionState,
    MessageFormat,
    filter_messages,
    format_json_value,
    is_structured,
    present,
    render_row,
)
from topic_console.models.messages import TopicMessage

from conftest import make_message


def _msgs():
    return [
        TopicMessage(**make_message(0, key="user-42", value="login ok")),
        TopicMessage(**make_message(1, key="user-7", value='{"event": "Checkout"}')),
        TopicMessage(**make_message(2, key=None, value="plain", headers={"Trace-Id": "abc123"})),
        TopicMessage(**make_message(3, key="k", value=None, headers={"source": "Billing"})),
    ]


class TestFilter:
    def test_blank_term_is_identity(self):
        msgs = _msgs()
        assert filter_messages(msgs, "") == msgs
        assert filter_messages(msgs, "   ") == msgs

    @pytest.mark.parametrize(
        "term,offsets",
        [
            ("USER-", [0, 1]),        # key
            ("checkout", [1]),        # value, case-insensitive
            ("trace", [2]),           # header key
            ("billing", [3]),         # header value
            ("nothing-here", []),
        ],
    )
    def test_matches_any_field(self, term, offsets):
        assert [m.offset for m in filter_messages(_msgs(), term)] == offsets

    def test_idempotent(self):
        msgs = _msgs()
        once = filter_messages(msgs, "user")
        assert filter_messages(once, "user") == once

    def test_does_not_mutate_input(self):
        msgs = _msgs()
        before = list(msgs)
        filter_messages(msgs, "user")
        assert msgs == before


class TestPresent:
    def test_text_is_raw(self):
        raw = '{"a":1}'
        assert present(raw, MessageFormat.TEXT) == raw

    def test_json_pretty_prints(self):
        assert present('{"a":1,"b":[1,2]}', "json") == json.dumps({"a": 1, "b": [1, 2]}, indent=2)

    @pytest.mark.parametrize("value", ["not json", "{broken", "NaN", "[1, 2"])
    def test_json_falls_back_to_text(self, value):
        assert present(value, "json") == present(value, "text") == value

    def test_empty_value(self):
        assert present(None, "json") == ""
        assert present("", "text") == ""

    def test_is_structured(self):
        assert is_structured('{"a": 1}')
        assert is_structured("123")
        assert not is_structured("hello")
        assert not is_structured("Infinity")
        assert not is_structured(None)

    def test_format_json_value(self):
        assert format_json_value('{"x":1}') == '{\n  "x": 1\n}'
        assert format_json_value("{oops") == "{oops"


class TestRows:
    def test_collapsed_row_truncates(self):
        msg = TopicMessage(**make_message(5, key="k" * 31, value="v" * 51))
        row = render_row(msg, MessageFormat.JSON, expanded=False)
        assert row.key == "k" * 30 + ELLIPSIS
        assert row.value == "v" * 50 + ELLIPSIS
        assert row.headers == {}

    def test_short_values_not_truncated(self):
        msg = TopicMessage(**make_message(5, key="k" * 30, value="v" * 50))
        row = render_row(msg, MessageFormat.TEXT, expanded=False)
        assert row.key == "k" * 30
        assert row.value == "v" * 50

    def test_structured_flag_ignores_format(self):
        msg = TopicMessage(**make_message(1, value='{"a": 1}'))
        assert render_row(msg, MessageFormat.TEXT, expanded=False).structured
        assert not render_row(TopicMessage(**make_message(2, value="x")), "json", False).structured

    def test_expanded_row_formats_value_and_shows_headers(self):
        msg = TopicMessage(**make_message(1, key="k" * 40, value='{"a":1}', headers={"h": "v"}))
        row = render_row(msg, MessageFormat.JSON, expanded=True)
        assert row.key == "k" * 40
        assert row.value == '{\n  "a": 1\n}'
        assert row.headers == {"h": "v"}


class TestExpansionState:
    def test_toggle_by_identity(self):
        state = ExpansionState()
        a = TopicMessage(**make_message(3))
        same_record = TopicMessage(**make_message(3, value="other copy"))
        assert state.toggle(a) is True
        assert state.is_expanded(same_record)
        assert state.toggle(same_record) is False
        assert len(state) == 0

    def test_partition_is_part_of_identity(self):
        state = ExpansionState()
        state.toggle(TopicMessage(**make_message(3, partition=0)))
        assert not state.is_expanded(TopicMessage(**make_message(3, partition=1)))
