"""
Provider Client Factory Module

Creates the client matching the configured backend dialect.
"""

from chatbridge.config import BackendConfig, BackendType
from chatbridge.providers.base import ProviderClient
from chatbridge.providers.ollama_client import OllamaClient
from chatbridge.providers.openai_client import OpenAIClient, OpenWebUIClient


# Client cache
_clients: dict[BackendConfig, ProviderClient] = {}


def get_provider_client(config: BackendConfig) -> ProviderClient:
    """
    Get provider client for the backend configuration

    Uses caching to avoid repeated client instantiation.

    Args:
        config: Backend configuration

    Returns:
        ProviderClient: Corresponding client instance

    Raises:
        ValueError: Unsupported backend type
    """
    if config not in _clients:
        if config.backend_type == BackendType.OPENAI:
            _clients[config] = OpenAIClient(config)
        elif config.backend_type == BackendType.OPENWEBUI:
            _clients[config] = OpenWebUIClient(config)
        elif config.backend_type == BackendType.OLLAMA:
            _clients[config] = OllamaClient(config)
        else:
            raise ValueError(f"Unsupported backend type: {config.backend_type}")

    return _clients[config]
