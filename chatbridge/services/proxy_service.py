"""
Proxy Core Service Module

Implements the request flow for every downstream dialect:
1. Validate the inbound request
2. Resolve model aliases
3. Convert to the upstream OpenAI shape
4. Call the provider client (unary or streaming)
5. Convert the response, or translate the stream, back to the downstream dialect
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from chatbridge.common.errors import AppError, ConfigurationError, InvalidRequestError
from chatbridge.config import BackendConfig, BackendType
from chatbridge.converters.anthropic import (
    anthropic_to_openai_request,
    map_model,
    openai_to_anthropic_response,
)
from chatbridge.converters.messages import drop_unused_tooling
from chatbridge.converters.ollama import ollama_to_openai_request, openai_to_ollama_response
from chatbridge.domain.anthropic import AnthropicMessagesRequest
from chatbridge.domain.model import ModelRecord
from chatbridge.domain.ollama import OllamaChatRequest
from chatbridge.providers.base import ProviderClient, StreamSignal
from chatbridge.services.model_directory import ModelDirectory
from chatbridge.services.stream_relay import DownstreamChannel, StreamRelay
from chatbridge.streaming import (
    AnthropicStreamTranslator,
    OllamaStreamTranslator,
    OpenAIStreamPassthrough,
    StreamTranslator,
)

logger = logging.getLogger(__name__)


def _error_message(exc: Exception) -> str:
    if isinstance(exc, AppError):
        return exc.message
    return "Internal error while streaming"


class ProxyService:
    """
    Proxy Core Service

    One instance per request; holds no state between calls besides the
    shared model directory.
    """

    def __init__(
        self,
        config: BackendConfig,
        client: ProviderClient,
        model_directory: ModelDirectory,
    ):
        self.config = config
        self.client = client
        self.model_directory = model_directory

    # ============ shared ============

    def _require_api_key(self) -> None:
        if self.config.backend_type != BackendType.OLLAMA and not self.config.api_key_configured:
            raise ConfigurationError("API key not configured. Set API_KEY for the upstream backend.")

    async def _open_stream(
        self,
        body: dict[str, Any],
        translator: StreamTranslator,
        name: str,
    ) -> StreamRelay:
        """
        Start an upstream stream feeding translator

        Raises the upstream error when it fails before any downstream output,
        so the caller can still answer with a plain JSON error.
        """

        async def produce(channel: DownstreamChannel) -> None:
            async def on_chunk(payload: str) -> StreamSignal:
                return await channel.send_all(translator.feed(payload))

            completed = await self.client.chat_stream(body, on_chunk)
            if completed:
                await channel.send_all(translator.finish())

        relay = StreamRelay(
            produce,
            on_error=lambda exc: translator.error(_error_message(exc)),
            name=name,
        )
        await relay.open()
        return relay

    async def list_models(self) -> list[ModelRecord]:
        return await self.model_directory.fetch_models(self.config, self.client)

    # ============ Anthropic ============

    @staticmethod
    def parse_anthropic_request(raw: Any) -> AnthropicMessagesRequest:
        """
        Validate an inbound Anthropic Messages body

        Raises:
            InvalidRequestError: missing model/messages or malformed content
        """
        if not isinstance(raw, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        try:
            request = AnthropicMessagesRequest.model_validate(raw)
        except PydanticValidationError as e:
            raise InvalidRequestError(
                "Invalid request body",
                details={"errors": e.errors(include_url=False, include_context=False)},
            )
        if not request.model or request.messages is None:
            raise InvalidRequestError("Missing required fields: model and messages")
        return request

    def _anthropic_target(self, request: AnthropicMessagesRequest) -> str:
        return map_model(self.config.resolve_model_alias(request.model))

    async def anthropic_messages(self, request: AnthropicMessagesRequest) -> dict[str, Any]:
        """Unary Anthropic Messages call"""
        self._require_api_key()
        target_model = self._anthropic_target(request)
        logger.info("Anthropic message: requested_model=%s target_model=%s", request.model, target_model)
        body = anthropic_to_openai_request(request, target_model, stream=False)
        response = await self.client.chat(body)
        return openai_to_anthropic_response(response, model=request.model)

    async def anthropic_messages_stream(self, request: AnthropicMessagesRequest) -> StreamRelay:
        """Streaming Anthropic Messages call"""
        self._require_api_key()
        target_model = self._anthropic_target(request)
        logger.info("Anthropic stream: requested_model=%s target_model=%s", request.model, target_model)
        body = anthropic_to_openai_request(request, target_model, stream=True)
        translator = AnthropicStreamTranslator(
            model=request.model,
            keep_open_on_tool_use=self.config.keep_stream_open_on_tool_use,
        )
        return await self._open_stream(body, translator, name="anthropic stream")

    def configured_model_listing(self, created: int) -> dict[str, Any]:
        """/v1/models body listing the configured alias targets"""
        models = self.config.configured_models() or [
            "claude-3-5-sonnet-20241022",
            "claude-3-5-haiku-20241022",
            "claude-3-opus-20240229",
        ]
        return {
            "object": "list",
            "data": [
                {"id": model, "object": "model", "created": created, "owned_by": "anthropic"}
                for model in models
            ],
        }

    # ============ Ollama ============

    @staticmethod
    def parse_ollama_request(raw: Any) -> OllamaChatRequest:
        if not isinstance(raw, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        try:
            request = OllamaChatRequest.model_validate(raw)
        except PydanticValidationError as e:
            raise InvalidRequestError(
                "Invalid request body",
                details={"errors": e.errors(include_url=False, include_context=False)},
            )
        if not request.model or request.messages is None:
            raise InvalidRequestError("Missing required fields: model and messages")
        return request

    def ollama_should_stream(self, request: OllamaChatRequest) -> bool:
        if request.stream is None:
            return self.config.stream_by_default
        return request.stream

    async def ollama_chat(self, request: OllamaChatRequest) -> dict[str, Any]:
        """Unary Ollama chat call"""
        target_model = self.config.resolve_model_alias(request.model)
        logger.info("Ollama chat: requested_model=%s target_model=%s", request.model, target_model)
        body = ollama_to_openai_request(request, target_model, stream=False)
        response = await self.client.chat(body)
        return openai_to_ollama_response(response, model=request.model)

    async def ollama_chat_stream(self, request: OllamaChatRequest) -> StreamRelay:
        """Streaming Ollama chat call"""
        target_model = self.config.resolve_model_alias(request.model)
        logger.info("Ollama stream: requested_model=%s target_model=%s", request.model, target_model)
        body = ollama_to_openai_request(request, target_model, stream=True)
        translator = OllamaStreamTranslator(model=request.model)
        return await self._open_stream(body, translator, name="ollama stream")

    # ============ OpenAI pass-through ============

    def prepare_openai_body(self, raw: Any) -> dict[str, Any]:
        if not isinstance(raw, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        if not raw.get("model") or not isinstance(raw.get("messages"), list):
            raise InvalidRequestError("Missing required fields: model and messages")
        body = dict(drop_unused_tooling(raw))
        body["model"] = self.config.resolve_model_alias(body["model"])
        return body

    async def openai_chat(self, body: dict[str, Any]) -> Any:
        logger.info("OpenAI chat: model=%s", body.get("model"))
        return await self.client.chat(body)

    async def openai_chat_stream(self, body: dict[str, Any], requested_model: Optional[str] = None) -> StreamRelay:
        logger.info("OpenAI stream: model=%s", body.get("model"))
        translator = OpenAIStreamPassthrough(model=requested_model or body.get("model") or "")
        return await self._open_stream(body, translator, name="openai stream")
