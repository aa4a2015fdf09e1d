"""
Shared test helpers for building upstream bodies and reading downstream streams
"""

import json
from typing import Any


def sse_body(*chunks: Any, done: bool = True) -> bytes:
    """Upstream OpenAI SSE body from chunk dicts (or raw strings)"""
    lines = []
    for item in chunks:
        payload = item if isinstance(item, str) else json.dumps(item)
        lines.append(f"data: {payload}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def ndjson_body(*objects: dict[str, Any]) -> bytes:
    return "".join(json.dumps(obj) + "\n" for obj in objects).encode("utf-8")


def parse_sse_events(raw: bytes) -> list[tuple[Any, Any]]:
    """Split downstream SSE bytes into (event, data) pairs"""
    events = []
    for block in raw.decode("utf-8").split("\n\n"):
        if not block.strip():
            continue
        event_name = None
        data = None
        for line in block.split("\n"):
            if line.startswith("event: "):
                event_name = line[len("event: "):]
            elif line.startswith("data: "):
                value = line[len("data: "):]
                data = value if value == "[DONE]" else json.loads(value)
        events.append((event_name, data))
    return events


def parse_ndjson(raw: bytes) -> list[dict[str, Any]]:
    return [json.loads(line) for line in raw.decode("utf-8").splitlines() if line.strip()]


def chunk(content: Any = None, role: Any = None, tool_calls: Any = None, finish_reason: Any = None) -> dict[str, Any]:
    """OpenAI chat.completion.chunk with one choice"""
    delta: dict[str, Any] = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def completion(content: Any = "Hello", tool_calls: Any = None, finish_reason: str = "stop") -> dict[str, Any]:
    """Unary OpenAI chat completion"""
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "vendor/normal-model",
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
    }
