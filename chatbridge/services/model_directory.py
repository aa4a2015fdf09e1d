"""
Model Directory Module

TTL-cached, retrying model listing per backend. A failed listing never
raises: callers get a single synthetic fallback record, which is never
cached so the next call tries the backend again.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from chatbridge.config import BackendConfig, Settings
from chatbridge.domain.model import ModelRecord
from chatbridge.providers.base import ProviderClient
from chatbridge.providers.factory import get_provider_client

logger = logging.getLogger(__name__)


@dataclass
class CachedModelList:
    """Model collection and the monotonic time it was fetched"""

    models: list[ModelRecord]
    fetched_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.fetched_at < ttl_seconds


def normalize_record(entry: dict[str, Any]) -> ModelRecord:
    """Build a ModelRecord from a raw listing entry, filling missing metadata with defaults"""
    known = {
        key: value
        for key, value in entry.items()
        if key in ModelRecord.model_fields and value is not None
    }
    try:
        return ModelRecord.model_validate(known)
    except PydanticValidationError:
        logger.debug("Model entry has unexpected metadata, keeping id only: %s", entry.get("id"))
        return ModelRecord(id=str(entry["id"]))


def fallback_record(config: BackendConfig) -> ModelRecord:
    return ModelRecord(
        id=config.default_model,
        object="model",
        type="llm",
        publisher="openai-proxy",
        arch="transformer",
        compatibility_type="openai",
        quantization="fp16",
        state="loaded",
        max_context_length=4096,
    )


class ModelDirectory:
    """
    Model Directory

    - Fresh cache entry (younger than the TTL): returned without network access
    - Miss or stale entry: fetched with up to max_attempts attempts and
      exponential backoff (initial delay, doubled per attempt); 5xx and
      transport failures are retried, 4xx falls back immediately
    - While a refresh for a key is in flight, other callers get the stale entry
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_attempts: int = 3,
        initial_delay_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max(1, max_attempts)
        self.initial_delay_ms = initial_delay_ms
        self._clock = clock
        self._sleep = sleep
        self._cache: dict[str, CachedModelList] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelDirectory":
        return cls(
            ttl_seconds=settings.MODEL_CACHE_TTL_SECONDS,
            max_attempts=settings.MODEL_FETCH_MAX_ATTEMPTS,
            initial_delay_ms=settings.MODEL_FETCH_RETRY_DELAY_MS,
        )

    @property
    def size(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    async def fetch_models(
        self,
        config: BackendConfig,
        client: Optional[ProviderClient] = None,
    ) -> list[ModelRecord]:
        """
        List the models of the configured backend

        Args:
            config: Backend configuration
            client: Provider client (defaults to the factory client for config)

        Returns:
            list[ModelRecord]: Cached, freshly fetched, or fallback records
        """
        client = client or get_provider_client(config)
        key = client.url(client.models_path)

        entry = self._cache.get(key)
        if entry is not None and entry.is_fresh(self._clock(), self.ttl_seconds):
            return list(entry.models)

        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked() and entry is not None:
            logger.debug("Model list refresh in progress for %s, serving stale entry", key)
            return list(entry.models)

        async with lock:
            entry = self._cache.get(key)
            if entry is not None and entry.is_fresh(self._clock(), self.ttl_seconds):
                return list(entry.models)

            models = await self._fetch_with_retry(client, key)
            if models is None:
                return [fallback_record(config)]

            self._cache[key] = CachedModelList(models=models, fetched_at=self._clock())
            logger.info("Cached %d model(s) for %s", len(models), key)
            return list(models)

    async def _fetch_with_retry(self, client: ProviderClient, key: str) -> Optional[list[ModelRecord]]:
        for attempt in range(1, self.max_attempts + 1):
            response = await client.list_models()

            if response.is_success:
                try:
                    entries = client.parse_models(response.body)
                except ValueError as e:
                    logger.warning("Unparsable model listing from %s: %s", key, e)
                    return None
                return [normalize_record(entry) for entry in entries]

            if not response.is_server_error:
                logger.warning(
                    "Model listing from %s failed with HTTP %s, using fallback",
                    key,
                    response.status_code,
                )
                return None

            logger.warning(
                "Model listing attempt %d/%d for %s failed: status=%s error=%s",
                attempt,
                self.max_attempts,
                key,
                response.status_code,
                response.error,
            )
            if attempt < self.max_attempts:
                delay_ms = self.initial_delay_ms * (2 ** (attempt - 1))
                await self._sleep(delay_ms / 1000)

        logger.warning("Model listing from %s exhausted %d attempts, using fallback", key, self.max_attempts)
        return None
