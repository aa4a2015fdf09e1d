"""
Integration fixtures: the FastAPI app wired to a mocked upstream
"""

from typing import Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from chatbridge.api.deps import get_client, get_config, get_model_directory
from chatbridge.main import app
from chatbridge.providers import OpenAIClient
from chatbridge.services import ModelDirectory


@pytest.fixture
def upstream():
    """Mutable upstream stand-in; tests assign .handler and read .requests"""

    class Upstream:
        def __init__(self):
            self.requests: list[httpx.Request] = []
            self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(404)

        def __call__(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.handler(request)

    return Upstream()


@pytest_asyncio.fixture
async def api_client(openai_config, upstream):
    client = OpenAIClient(openai_config, transport=httpx.MockTransport(upstream))
    directory = ModelDirectory(sleep=_no_sleep)
    app.dependency_overrides[get_config] = lambda: openai_config
    app.dependency_overrides[get_client] = lambda: client
    app.dependency_overrides[get_model_directory] = lambda: directory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


async def _no_sleep(delay: float) -> None:
    return None
