"""
OpenAI-Compatible Clients

OpenAI Chat Completions upstreams (OpenAI, OpenRouter and other compatible
servers) and OpenWebUI, which speaks the same protocol under /api with
Ollama conventions leaking into tool calls.
"""

import json
import logging
from typing import Any, Callable

from chatbridge.converters.ollama import OllamaChunkNormalizer, ollama_response_to_openai
from chatbridge.converters.tool_calls import normalize_openai_tool_calls, ollama_tools_to_openai
from chatbridge.providers.base import ProviderClient

logger = logging.getLogger(__name__)


class OpenAIClient(ProviderClient):
    """
    OpenAI Protocol Client

    Endpoints:
    - {base}/v1/chat/completions (OpenRouter: {base}/api/v1/chat/completions)
    - {base}/v1/models
    """

    @property
    def chat_path(self) -> str:
        if self.config.is_openrouter:
            return "api/v1/chat/completions"
        return "v1/chat/completions"

    @property
    def models_path(self) -> str:
        if self.config.is_openrouter:
            return "api/v1/models"
        return "v1/models"

    def _prepare_headers(self) -> dict[str, str]:
        headers = super()._prepare_headers()
        if self.config.is_openrouter:
            if self.config.openrouter_referer:
                headers["HTTP-Referer"] = self.config.openrouter_referer
            if self.config.openrouter_title:
                headers["X-Title"] = self.config.openrouter_title
        return headers

    def prepare_chat_body(self, body: dict[str, Any], stream: bool) -> dict[str, Any]:
        prepared = dict(body)
        prepared["stream"] = stream
        if self.config.is_openrouter:
            preference = self.config.provider_for_model(prepared.get("model"))
            if preference:
                prepared["provider"] = {"order": [preference], "allow_fallbacks": False}
        return prepared

    def parse_models(self, body: Any) -> list[dict[str, Any]]:
        entries = body.get("data") if isinstance(body, dict) else body
        if not isinstance(entries, list):
            raise ValueError("Model listing has no data array")
        return [entry for entry in entries if isinstance(entry, dict) and entry.get("id")]


class OpenWebUIClient(OpenAIClient):
    """
    OpenWebUI Client

    Endpoints:
    - {base}/api/chat/completions
    - {base}/api/models

    OpenWebUI relays Ollama models, so tool definitions are normalized on the
    way out and tool calls in responses and stream chunks on the way back.
    """

    @property
    def chat_path(self) -> str:
        return "api/chat/completions"

    @property
    def models_path(self) -> str:
        return "api/models"

    def prepare_chat_body(self, body: dict[str, Any], stream: bool) -> dict[str, Any]:
        prepared = dict(body)
        prepared["stream"] = stream
        if prepared.get("tools"):
            prepared["tools"] = ollama_tools_to_openai(prepared["tools"])
        messages = []
        for message in prepared.get("messages") or []:
            if isinstance(message, dict) and message.get("tool_calls"):
                message = dict(message)
                calls = normalize_openai_tool_calls(message["tool_calls"])
                for call in calls:
                    call.pop("index", None)
                message["tool_calls"] = calls
            messages.append(message)
        prepared["messages"] = messages
        if stream:
            # rejected by OpenWebUI on streaming requests
            prepared.pop("keep_alive", None)
            prepared.pop("options", None)
        return prepared

    def normalize_response(self, body: Any) -> Any:
        return ollama_response_to_openai(body)

    def new_stream_normalizer(self, body: dict[str, Any]) -> Callable[[str], list[str]]:
        normalizer = OllamaChunkNormalizer(model=body.get("model"))

        def normalize(payload: str) -> list[str]:
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                # [DONE] and garbage pass through; the translator decides
                return [payload]
            if not isinstance(data, dict):
                return [payload]
            chunk = normalizer.normalize(data)
            if chunk is None:
                logger.debug("Dropping unrecognised OpenWebUI chunk: %.200s", payload)
                return []
            return [json.dumps(chunk, ensure_ascii=False)]

        return normalize
