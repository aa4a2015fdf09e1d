"""
OpenAI pass-through endpoints end to end
"""

import json

import httpx
import pytest

from tests.helpers import chunk, completion, parse_sse_events, sse_body


@pytest.mark.asyncio
async def test_chat_completions_passthrough(api_client, upstream):
    upstream.handler = lambda request: httpx.Response(200, json=completion("Hi"))

    resp = await api_client.post(
        "/v1/chat/completions",
        json={
            "model": "small_fast_model",
            "messages": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "", "tool_calls": [{"id": "x", "function": {"name": "f"}}]},
            ],
            "tools": [],
            "tool_choice": "auto",
        },
    )

    assert resp.status_code == 200
    assert resp.json() == completion("Hi")
    sent = json.loads(upstream.requests[0].content)
    assert sent["model"] == "vendor/small-model"
    assert "tools" not in sent
    assert "tool_choice" not in sent
    assert "tool_calls" not in sent["messages"][1]


@pytest.mark.asyncio
async def test_chat_completions_stream(api_client, upstream):
    upstream.handler = lambda request: httpx.Response(200, content=sse_body(chunk("a"), chunk("b")))

    resp = await api_client.post(
        "/v1/chat/completions",
        json={"model": "m", "stream": True, "messages": [{"role": "user", "content": "Hi"}]},
    )

    assert resp.status_code == 200
    events = parse_sse_events(resp.content)
    assert events[-1] == (None, "[DONE]")
    assert len(events) == 3


@pytest.mark.asyncio
async def test_chat_completions_upstream_error(api_client, upstream):
    upstream.handler = lambda request: httpx.Response(401, json={"error": {"message": "bad key"}})

    resp = await api_client.post(
        "/v1/chat/completions", json={"model": "m", "messages": [{"role": "user", "content": "Hi"}]}
    )

    assert resp.status_code == 401
    error = resp.json()["error"]
    assert error["type"] == "api_error"
    assert "bad key" in error["message"]


@pytest.mark.asyncio
async def test_v0_models(api_client, upstream):
    upstream.handler = lambda request: httpx.Response(200, json={"data": [{"id": "vendor/a", "owned_by": "vendor"}]})

    resp = await api_client.get("/api/v0/models")

    assert resp.status_code == 200
    data = resp.json()
    assert data["object"] == "list"
    record = data["data"][0]
    assert record["id"] == "vendor/a"
    assert record["owned_by"] == "vendor"
    assert record["type"] == "llm"
    assert record["state"] == "not-loaded"
    assert "digest" not in record
