"""
Provider Client Module

Contains client implementations for each upstream dialect.
"""

from chatbridge.providers.base import ProviderClient, ProviderResponse, StreamSignal
from chatbridge.providers.factory import get_provider_client
from chatbridge.providers.ollama_client import OllamaClient
from chatbridge.providers.openai_client import OpenAIClient, OpenWebUIClient

__all__ = [
    "ProviderClient",
    "ProviderResponse",
    "StreamSignal",
    "get_provider_client",
    "OllamaClient",
    "OpenAIClient",
    "OpenWebUIClient",
]
