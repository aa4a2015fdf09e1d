from chatbridge.converters.messages import (
    TOOL_RESULT_FILLER,
    drop_unused_tooling,
    insert_tool_result_fillers,
    validate_tool_calls,
)


def call(call_id):
    return {"id": call_id, "type": "function", "function": {"name": "f", "arguments": "{}"}}


class TestValidateToolCalls:
    def test_tool_message_after_run_of_tool_messages_is_kept(self):
        messages = [
            {"role": "user", "content": "go"},
            {"role": "assistant", "content": None, "tool_calls": [call("a"), call("b")]},
            {"role": "tool", "tool_call_id": "a", "content": "1"},
            {"role": "tool", "tool_call_id": "b", "content": "2"},
        ]
        assert validate_tool_calls(messages) == messages

    def test_tool_message_without_preceding_call_is_dropped(self):
        messages = [
            {"role": "user", "content": "go"},
            {"role": "tool", "tool_call_id": "a", "content": "1"},
        ]
        assert validate_tool_calls(messages) == [{"role": "user", "content": "go"}]

    def test_tool_message_separated_by_user_turn_is_dropped(self):
        messages = [
            {"role": "assistant", "content": None, "tool_calls": [call("a")]},
            {"role": "tool", "tool_call_id": "a", "content": "1"},
            {"role": "user", "content": "again"},
            {"role": "tool", "tool_call_id": "a", "content": "dup"},
        ]
        result = validate_tool_calls(messages)
        assert [m["role"] for m in result] == ["assistant", "tool", "user"]

    def test_assistant_left_empty_is_dropped(self):
        messages = [
            {"role": "user", "content": "go"},
            {"role": "assistant", "content": None, "tool_calls": [call("a")]},
            {"role": "user", "content": "never mind"},
        ]
        assert validate_tool_calls(messages) == [
            {"role": "user", "content": "go"},
            {"role": "user", "content": "never mind"},
        ]

    def test_assistant_with_text_keeps_text_when_calls_dropped(self):
        messages = [{"role": "assistant", "content": "Let me see", "tool_calls": [call("a")]}]
        assert validate_tool_calls(messages) == [{"role": "assistant", "content": "Let me see"}]

    def test_assistant_with_empty_content_and_no_calls_is_dropped(self):
        messages = [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": ""},
            {"role": "user", "content": "next"},
        ]
        assert validate_tool_calls(messages) == [
            {"role": "user", "content": "hi"},
            {"role": "user", "content": "next"},
        ]

    def test_input_is_not_mutated(self):
        assistant = {"role": "assistant", "content": "x", "tool_calls": [call("a")]}
        validate_tool_calls([assistant])
        assert assistant["tool_calls"] == [call("a")]


def test_filler_inserted_only_between_tool_and_user():
    messages = [
        {"role": "assistant", "content": None, "tool_calls": [call("a")]},
        {"role": "tool", "tool_call_id": "a", "content": "1"},
        {"role": "user", "content": "next"},
    ]
    result = insert_tool_result_fillers(messages)
    assert result[2] == {"role": "assistant", "content": TOOL_RESULT_FILLER}
    assert len(result) == 4
    assert insert_tool_result_fillers(messages[:2]) == messages[:2]


def test_drop_unused_tooling_with_empty_tools():
    body = {
        "model": "m",
        "tools": [],
        "tool_choice": "auto",
        "messages": [{"role": "assistant", "content": "x", "tool_calls": [call("a")]}],
    }
    cleaned = drop_unused_tooling(body)
    assert cleaned == {"model": "m", "messages": [{"role": "assistant", "content": "x"}]}
    assert "tools" in body


def test_drop_unused_tooling_keeps_bodies_with_tools():
    body = {"model": "m", "tools": [{"type": "function"}], "tool_choice": "auto", "messages": []}
    assert drop_unused_tooling(body) is body
