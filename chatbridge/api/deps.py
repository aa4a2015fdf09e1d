"""
API Dependency Injection Module

Provides dependencies required by FastAPI routes. Tests replace them through
app.dependency_overrides.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from chatbridge.config import BackendConfig, get_backend_config, get_settings
from chatbridge.providers import ProviderClient, get_provider_client
from chatbridge.services import ModelDirectory, ProxyService


def get_config() -> BackendConfig:
    """Get the backend configuration"""
    return get_backend_config()


BackendConfigDep = Annotated[BackendConfig, Depends(get_config)]


def get_client(config: BackendConfigDep) -> ProviderClient:
    """Get the provider client for the configured backend"""
    return get_provider_client(config)


ProviderClientDep = Annotated[ProviderClient, Depends(get_client)]


# ============ Global Singleton ============


@lru_cache()
def get_model_directory() -> ModelDirectory:
    """Process-wide model directory, so the cache survives across requests"""
    return ModelDirectory.from_settings(get_settings())


ModelDirectoryDep = Annotated[ModelDirectory, Depends(get_model_directory)]


def get_proxy_service(
    config: BackendConfigDep,
    client: ProviderClientDep,
    model_directory: ModelDirectoryDep,
) -> ProxyService:
    """Get proxy service"""
    return ProxyService(config, client, model_directory)


ProxyServiceDep = Annotated[ProxyService, Depends(get_proxy_service)]
