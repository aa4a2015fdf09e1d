"""
Tests for the Ollama native provider client
"""

import json
from dataclasses import replace

import httpx
import pytest

from chatbridge.common.errors import UpstreamError
from chatbridge.config import BackendType
from chatbridge.providers import OllamaClient
from tests.helpers import ndjson_body


@pytest.fixture
def ollama_config(openai_config):
    return replace(openai_config, backend_type=BackendType.OLLAMA, base_url="http://localhost:11435", api_key="")


class TestOllamaClient:
    @pytest.mark.asyncio
    async def test_chat_converts_request_and_response(self, ollama_config, recording_transport):
        seen = []
        transport = recording_transport(
            lambda request: httpx.Response(
                200,
                json={
                    "model": "llama3",
                    "message": {"role": "assistant", "content": "Hi"},
                    "done": True,
                    "prompt_eval_count": 3,
                    "eval_count": 1,
                },
            ),
            seen,
        )
        client = OllamaClient(ollama_config, transport=transport)

        result = await client.chat(
            {"model": "llama3", "messages": [{"role": "user", "content": "Hello"}], "max_tokens": 20}
        )

        request = seen[0]
        assert str(request.url) == "http://localhost:11435/api/chat"
        assert "Authorization" not in request.headers
        sent = json.loads(request.content)
        assert sent["stream"] is False
        assert sent["options"]["num_predict"] == 20
        assert result["choices"][0]["message"]["content"] == "Hi"
        assert result["usage"] == {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4}

    @pytest.mark.asyncio
    async def test_stream_ndjson_becomes_openai_chunks(self, ollama_config):
        body = ndjson_body(
            {"model": "llama3", "message": {"role": "assistant", "content": "Hel"}, "done": False},
            {"model": "llama3", "message": {"role": "assistant", "content": "lo"}, "done": False},
            {"model": "llama3", "message": {"role": "assistant", "content": ""}, "done": True, "eval_count": 2},
        )
        client = OllamaClient(
            ollama_config,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body)),
        )

        payloads = [payload async for payload in client.iter_chat_stream({"model": "llama3", "messages": []})]

        assert payloads[-1] == "[DONE]"
        chunks = [json.loads(p) for p in payloads[:-1]]
        assert "".join(c["choices"][0]["delta"].get("content", "") for c in chunks) == "Hello"
        assert chunks[-1]["choices"][0]["finish_reason"] == "stop"
        assert chunks[-1]["usage"]["completion_tokens"] == 2

    @pytest.mark.asyncio
    async def test_stream_tool_calls_get_ids_and_indices(self, ollama_config):
        body = ndjson_body(
            {
                "model": "llama3",
                "message": {
                    "role": "assistant",
                    "content": "",
                    "tool_calls": [{"function": {"name": "get_weather", "arguments": {"city": "Oslo"}}}],
                },
                "done": False,
            },
            {"model": "llama3", "message": {"role": "assistant", "content": ""}, "done": True},
        )
        client = OllamaClient(
            ollama_config,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body)),
        )

        payloads = [payload async for payload in client.iter_chat_stream({"model": "llama3", "messages": []})]

        first = json.loads(payloads[0])["choices"][0]["delta"]["tool_calls"][0]
        assert first["index"] == 0
        assert first["id"].startswith("call_")
        assert json.loads(first["function"]["arguments"]) == {"city": "Oslo"}
        assert json.loads(payloads[1])["choices"][0]["finish_reason"] == "tool_calls"

    @pytest.mark.asyncio
    async def test_stream_error_line_raises(self, ollama_config):
        body = ndjson_body({"error": "model not found"})
        client = OllamaClient(
            ollama_config,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body)),
        )

        with pytest.raises(UpstreamError, match="model not found"):
            async for _ in client.iter_chat_stream({"model": "llama3", "messages": []}):
                pass

    def test_parse_models_from_tags(self, ollama_config):
        client = OllamaClient(ollama_config)
        body = {
            "models": [
                {
                    "name": "llama3:8b",
                    "size": 4661224676,
                    "digest": "abc123",
                    "details": {"format": "gguf", "family": "llama", "quantization_level": "Q4_0"},
                },
                {"size": 1},
            ]
        }

        entries = client.parse_models(body)

        assert entries == [
            {
                "id": "llama3:8b",
                "size": 4661224676,
                "digest": "abc123",
                "quantization": "Q4_0",
                "arch": "llama",
                "compatibility_type": "gguf",
                "publisher": "ollama",
            }
        ]

    def test_models_url(self, ollama_config):
        client = OllamaClient(ollama_config)
        assert client.url(client.models_path) == "http://localhost:11435/api/tags"
