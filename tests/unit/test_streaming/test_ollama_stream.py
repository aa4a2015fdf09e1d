import json

from chatbridge.streaming import OllamaStreamTranslator
from tests.helpers import chunk, parse_ndjson


def run(translator, *payloads):
    out = []
    for payload in payloads:
        out.extend(translator.feed(payload if isinstance(payload, str) else json.dumps(payload)))
    out.extend(translator.finish())
    return parse_ndjson(b"".join(out))


def make_translator():
    return OllamaStreamTranslator(model="llama3", clock=lambda: "2024-01-01T00:00:00Z")


def test_text_stream_ends_with_single_done_line():
    lines = run(make_translator(), chunk(role="assistant"), chunk("Hel"), chunk("lo"), chunk(finish_reason="stop"), "[DONE]")
    assert lines[0] == {
        "model": "llama3",
        "created_at": "2024-01-01T00:00:00Z",
        "message": {"role": "assistant", "content": "Hel"},
        "done": False,
    }
    assert [line["done"] for line in lines] == [False, False, True]
    assert lines[-1]["done_reason"] == "stop"
    assert lines[-1]["message"] == {"role": "assistant", "content": ""}


def test_fragmented_tool_call_is_released_complete():
    lines = run(
        make_translator(),
        chunk(role="assistant"),
        chunk(tool_calls=[{"index": 0, "id": "call_1", "function": {"name": "get_weather", "arguments": '{"ci'}}]),
        chunk(tool_calls=[{"index": 0, "function": {"arguments": 'ty": "Oslo"}'}}]),
        chunk(finish_reason="tool_calls"),
        "[DONE]",
    )
    assert len(lines) == 2
    assert lines[0]["message"]["tool_calls"] == [
        {"id": "call_1", "function": {"name": "get_weather", "arguments": {"city": "Oslo"}}}
    ]
    assert lines[0]["done"] is False
    assert lines[1]["done"] is True
    assert lines[1]["finish_reason"] == "tool_calls"


def test_pending_tool_calls_flushed_when_stream_ends_early():
    lines = run(
        make_translator(),
        chunk(tool_calls=[{"index": 0, "id": "call_1", "function": {"name": "f", "arguments": "{}"}}]),
    )
    assert lines[0]["message"]["tool_calls"][0]["function"] == {"name": "f", "arguments": {}}
    assert lines[-1]["done"] is True


def test_usage_becomes_eval_counts():
    final = chunk(finish_reason="stop")
    final["usage"] = {"prompt_tokens": 4, "completion_tokens": 2}
    lines = run(make_translator(), chunk("x"), final)
    assert lines[-1]["prompt_eval_count"] == 4
    assert lines[-1]["eval_count"] == 2


def test_error_line():
    translator = make_translator()
    translator.feed(json.dumps(chunk("x")))
    assert parse_ndjson(b"".join(translator.error("boom"))) == [{"error": "boom", "done": True}]
    assert translator.finish() == []
