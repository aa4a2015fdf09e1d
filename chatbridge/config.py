"""
Configuration Management Module

Configures the proxy via environment variables or .env file, and exposes the
plain backend configuration record consumed by the translation core.
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendType(str, Enum):
    """Upstream dialect the proxy talks to"""

    OPENAI = "openai"
    OPENWEBUI = "openwebui"
    OLLAMA = "ollama"

    @classmethod
    def from_string(cls, value: str) -> "BackendType":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported backend type: {value}")


class Settings(BaseSettings):
    """
    Application Configuration Class

    All configuration items can be overridden by environment variables, with names matching fields (uppercase).
    """

    # Application Config
    APP_NAME: str = "ChatBridge"
    DEBUG: bool = False

    # Server Config
    # Ollama clients expect 11434
    HOST: str = "127.0.0.1"
    PORT: int = 11434

    # Backend Config
    # One of "openai", "openwebui", "ollama"
    BACKEND_TYPE: str = "openai"
    BASE_URL: str = "https://openrouter.ai/"
    API_KEY: str = ""

    # Model Aliases
    # "base_model" resolves to NORMAL_MODEL, "small_fast_model" to SMALL_MODEL
    NORMAL_MODEL: str = "moonshotai/kimi-k2"
    SMALL_MODEL: str = "mistralai/devstral-small"
    # OpenRouter provider preference per alias (empty disables routing hints)
    NORMAL_MODEL_PROVIDER: str = ""
    SMALL_MODEL_PROVIDER: str = ""
    # Model id reported when the upstream model list is unavailable
    DEFAULT_MODEL: str = "openai-proxy"

    # Streaming Config
    # Ollama /api/chat streams when the request omits "stream"
    STREAM_BY_DEFAULT: bool = True
    # Leave Anthropic streams without message_stop when the model asked for a tool
    KEEP_STREAM_OPEN_ON_TOOL_USE: bool = True

    # HTTP Client Config (seconds)
    CONNECT_TIMEOUT: float = 30
    READ_TIMEOUT: float = 120
    STREAM_READ_TIMEOUT: float = 300

    # Model Directory Config
    MODEL_CACHE_TTL_SECONDS: int = 300
    MODEL_FETCH_MAX_ATTEMPTS: int = 3
    # Initial backoff, doubled on every further attempt (ms)
    MODEL_FETCH_RETRY_DELAY_MS: int = 1000

    # OpenRouter attribution headers
    OPENROUTER_REFERER: str = "https://github.com/chatbridge/chatbridge"
    OPENROUTER_TITLE: str = "ChatBridge"

    # CORS Config
    # Comma-separated list of allowed origins for CORS
    ALLOWED_ORIGINS: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application configuration (Singleton)

    Returns:
        Settings: Application configuration instance
    """
    return Settings()


@dataclass(frozen=True)
class BackendConfig:
    """
    Backend Configuration Record

    Everything the converters, provider clients and model directory need to
    know about the upstream. Decoupled from Settings so tests can build one
    directly.
    """

    backend_type: BackendType
    base_url: str
    api_key: str = ""
    normal_model: str = ""
    small_model: str = ""
    normal_model_provider: str = ""
    small_model_provider: str = ""
    default_model: str = "openai-proxy"
    stream_by_default: bool = True
    keep_stream_open_on_tool_use: bool = True
    connect_timeout: float = 30
    read_timeout: float = 120
    stream_read_timeout: float = 300
    openrouter_referer: str = ""
    openrouter_title: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendConfig":
        return cls(
            backend_type=BackendType.from_string(settings.BACKEND_TYPE),
            base_url=settings.BASE_URL,
            api_key=settings.API_KEY,
            normal_model=settings.NORMAL_MODEL,
            small_model=settings.SMALL_MODEL,
            normal_model_provider=settings.NORMAL_MODEL_PROVIDER,
            small_model_provider=settings.SMALL_MODEL_PROVIDER,
            default_model=settings.DEFAULT_MODEL,
            stream_by_default=settings.STREAM_BY_DEFAULT,
            keep_stream_open_on_tool_use=settings.KEEP_STREAM_OPEN_ON_TOOL_USE,
            connect_timeout=settings.CONNECT_TIMEOUT,
            read_timeout=settings.READ_TIMEOUT,
            stream_read_timeout=settings.STREAM_READ_TIMEOUT,
            openrouter_referer=settings.OPENROUTER_REFERER,
            openrouter_title=settings.OPENROUTER_TITLE,
        )

    @property
    def api_key_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def is_openrouter(self) -> bool:
        return "openrouter.ai" in self.base_url.lower()

    def resolve_model_alias(self, model: Optional[str]) -> Optional[str]:
        """
        Resolve logical model aliases to configured model ids

        Unknown names are returned unchanged; an alias whose target is not
        configured is also returned unchanged.
        """
        if model in ("base_model", "normal") and self.normal_model:
            return self.normal_model
        if model in ("small_fast_model", "small") and self.small_model:
            return self.small_model
        return model

    def provider_for_model(self, model: Optional[str]) -> str:
        """
        OpenRouter provider preference for a resolved model id

        Falls back to the normal alias preference for models that match
        neither alias.
        """
        if model and model == self.small_model and model != self.normal_model:
            return self.small_model_provider.strip()
        return self.normal_model_provider.strip()

    def configured_models(self) -> list[str]:
        """Distinct configured alias targets, normal first"""
        models: list[str] = []
        for model in (self.normal_model, self.small_model):
            if model and model.strip() and model not in models:
                models.append(model)
        return models


@lru_cache()
def get_backend_config() -> BackendConfig:
    """Backend configuration built from the cached settings"""
    return BackendConfig.from_settings(get_settings())
