"""
Tests for the TTL-cached, retrying model directory
"""

import asyncio

import httpx
import pytest

from chatbridge.providers import OpenAIClient
from chatbridge.services import ModelDirectory
from chatbridge.services.model_directory import normalize_record


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def scripted_transport(*responses):
    """Answer successive requests with the given (status, json) pairs, repeating the last"""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        status, body = responses[min(len(calls), len(responses) - 1)]
        calls.append(request)
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler), calls


LISTING = {"data": [{"id": "vendor/a", "owned_by": "vendor"}, {"id": "vendor/b"}]}


class TestModelDirectory:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def sleep(self):
        return SleepRecorder()

    @pytest.fixture
    def directory(self, clock, sleep):
        return ModelDirectory(ttl_seconds=300, max_attempts=3, initial_delay_ms=1000, clock=clock, sleep=sleep)

    @pytest.mark.asyncio
    async def test_fetch_and_normalize(self, directory, openai_config):
        transport, calls = scripted_transport((200, LISTING))
        client = OpenAIClient(openai_config, transport=transport)

        models = await directory.fetch_models(openai_config, client)

        assert [m.id for m in models] == ["vendor/a", "vendor/b"]
        assert models[0].owned_by == "vendor"
        assert models[1].publisher == "lmstudio"
        assert models[1].max_context_length == 4096
        assert directory.size == 1
        assert str(calls[0].url) == "https://api.example.com/v1/models"

    @pytest.mark.asyncio
    async def test_fresh_entry_served_from_cache(self, directory, clock, openai_config):
        transport, calls = scripted_transport((200, LISTING))
        client = OpenAIClient(openai_config, transport=transport)

        await directory.fetch_models(openai_config, client)
        clock.now += 299
        models = await directory.fetch_models(openai_config, client)

        assert len(calls) == 1
        assert [m.id for m in models] == ["vendor/a", "vendor/b"]

    @pytest.mark.asyncio
    async def test_stale_entry_refetched(self, directory, clock, openai_config):
        transport, calls = scripted_transport((200, LISTING), (200, {"data": [{"id": "vendor/c"}]}))
        client = OpenAIClient(openai_config, transport=transport)

        await directory.fetch_models(openai_config, client)
        clock.now += 300
        models = await directory.fetch_models(openai_config, client)

        assert len(calls) == 2
        assert [m.id for m in models] == ["vendor/c"]

    @pytest.mark.asyncio
    async def test_server_errors_retried_with_backoff(self, directory, sleep, openai_config):
        transport, calls = scripted_transport((503, {}), (500, {}), (200, LISTING))
        client = OpenAIClient(openai_config, transport=transport)

        models = await directory.fetch_models(openai_config, client)

        assert len(calls) == 3
        assert sleep.delays == [1.0, 2.0]
        assert [m.id for m in models] == ["vendor/a", "vendor/b"]

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_uncached_fallback(self, directory, sleep, openai_config):
        transport, calls = scripted_transport((502, {}))
        client = OpenAIClient(openai_config, transport=transport)

        models = await directory.fetch_models(openai_config, client)

        assert len(calls) == 3
        assert sleep.delays == [1.0, 2.0]
        assert len(models) == 1
        fallback = models[0]
        assert fallback.id == "openai-proxy"
        assert fallback.publisher == "openai-proxy"
        assert fallback.compatibility_type == "openai"
        assert fallback.quantization == "fp16"
        assert fallback.state == "loaded"
        assert directory.size == 0

    @pytest.mark.asyncio
    async def test_client_error_falls_back_without_retry(self, directory, sleep, openai_config):
        transport, calls = scripted_transport((401, {"error": "bad key"}), (200, LISTING))
        client = OpenAIClient(openai_config, transport=transport)

        models = await directory.fetch_models(openai_config, client)

        assert len(calls) == 1
        assert sleep.delays == []
        assert [m.id for m in models] == ["openai-proxy"]

        # fallback is not cached: the next call reaches the backend again
        models = await directory.fetch_models(openai_config, client)
        assert len(calls) == 2
        assert [m.id for m in models] == ["vendor/a", "vendor/b"]

    @pytest.mark.asyncio
    async def test_unparsable_listing_falls_back(self, directory, openai_config):
        transport, calls = scripted_transport((200, {"unexpected": []}))
        client = OpenAIClient(openai_config, transport=transport)

        models = await directory.fetch_models(openai_config, client)

        assert [m.id for m in models] == ["openai-proxy"]
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_stale_entry_served_while_refresh_in_flight(self, clock, openai_config):
        release = asyncio.Event()
        calls = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) > 1:
                await release.wait()
                return httpx.Response(200, json={"data": [{"id": "vendor/new"}]})
            return httpx.Response(200, json=LISTING)

        client = OpenAIClient(openai_config, transport=httpx.MockTransport(handler))
        directory = ModelDirectory(ttl_seconds=10, clock=clock)

        await directory.fetch_models(openai_config, client)
        clock.now += 11

        refresh = asyncio.create_task(directory.fetch_models(openai_config, client))
        while len(calls) < 2:
            await asyncio.sleep(0)
        stale = await directory.fetch_models(openai_config, client)
        release.set()
        refreshed = await refresh

        assert [m.id for m in stale] == ["vendor/a", "vendor/b"]
        assert [m.id for m in refreshed] == ["vendor/new"]
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_clear(self, directory, openai_config):
        transport, calls = scripted_transport((200, LISTING))
        client = OpenAIClient(openai_config, transport=transport)

        await directory.fetch_models(openai_config, client)
        directory.clear()
        await directory.fetch_models(openai_config, client)

        assert directory.size == 1
        assert len(calls) == 2


def test_normalize_record_ignores_unknown_and_bad_metadata():
    record = normalize_record({"id": "m", "permission": [], "max_context_length": "not a number"})

    assert record.id == "m"
    assert record.max_context_length == 4096
    assert "permission" not in record.model_dump()
