import json

from chatbridge.converters.tool_calls import (
    arguments_to_object,
    normalize_openai_tool_calls,
    ollama_tool_calls_to_openai,
    ollama_tools_to_openai,
    openai_tool_calls_to_ollama,
)


def test_ollama_tool_calls_get_ids_and_string_arguments():
    converted = ollama_tool_calls_to_openai([{"function": {"name": "f", "arguments": {"x": 1}}}])
    assert converted[0]["id"].startswith("call_")
    assert converted[0]["type"] == "function"
    assert converted[0]["index"] == 0
    assert json.loads(converted[0]["function"]["arguments"]) == {"x": 1}


def test_openai_tool_calls_to_ollama_parse_arguments():
    converted = openai_tool_calls_to_ollama(
        [{"id": "c1", "type": "function", "function": {"name": "f", "arguments": '{"x": 1}'}}]
    )
    assert converted == [{"id": "c1", "function": {"name": "f", "arguments": {"x": 1}}}]


def test_arguments_to_object_degrades():
    assert arguments_to_object("{broken") == {}
    assert arguments_to_object("[1, 2]") == {}
    assert arguments_to_object(None) == {}
    assert arguments_to_object({"a": 1}) == {"a": 1}


def test_ollama_tools_default_description():
    tools = ollama_tools_to_openai([{"type": "function", "function": {"name": "f", "parameters": {"type": "object"}}}])
    assert tools == [{"type": "function", "function": {"name": "f", "description": "", "parameters": {"type": "object"}}}]


def test_normalize_leaves_continuation_fragments_without_ids():
    normalized = normalize_openai_tool_calls(
        [
            {"index": 0, "function": {"name": "f", "arguments": {"a": 1}}},
            {"index": 0, "function": {"arguments": "more"}},
        ]
    )
    assert normalized[0]["id"].startswith("call_")
    assert normalized[0]["function"]["arguments"] == '{"a": 1}'
    assert "id" not in normalized[1]
