"""
Test Configuration Module
"""

from typing import Callable

import httpx
import pytest

from chatbridge.config import BackendConfig, BackendType


@pytest.fixture
def openai_config() -> BackendConfig:
    """OpenAI-compatible backend with both aliases configured"""
    return BackendConfig(
        backend_type=BackendType.OPENAI,
        base_url="https://api.example.com",
        api_key="sk-test",
        normal_model="vendor/normal-model",
        small_model="vendor/small-model",
        default_model="openai-proxy",
    )


@pytest.fixture
def recording_transport() -> Callable[..., httpx.MockTransport]:
    """Build a MockTransport that appends every request it sees to a list"""

    def factory(handler: Callable[[httpx.Request], httpx.Response], seen: list[httpx.Request]):
        def record(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        return httpx.MockTransport(record)

    return factory
