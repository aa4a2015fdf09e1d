"""
Ollama Native Client

Talks to Ollama's own API ({base}/api/chat NDJSON, {base}/api/tags) and
presents it as an OpenAI Chat Completions upstream.
"""

import json
import logging
from typing import Any, Callable

from chatbridge.common.errors import UpstreamError
from chatbridge.common.framing import DONE_MARKER, NDJSONDecoder
from chatbridge.converters.ollama import (
    OllamaChunkNormalizer,
    ollama_response_to_openai,
    openai_to_ollama_request,
)
from chatbridge.providers.base import ProviderClient

logger = logging.getLogger(__name__)


class OllamaClient(ProviderClient):
    """Ollama native protocol client"""

    @property
    def chat_path(self) -> str:
        return "api/chat"

    @property
    def models_path(self) -> str:
        return "api/tags"

    def prepare_chat_body(self, body: dict[str, Any], stream: bool) -> dict[str, Any]:
        return openai_to_ollama_request({**body, "stream": stream})

    def parse_models(self, body: Any) -> list[dict[str, Any]]:
        if not isinstance(body, dict) or not isinstance(body.get("models"), list):
            raise ValueError("Model listing has no models array")
        entries = []
        for entry in body["models"]:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name") or entry.get("model")
            if not name:
                continue
            record = {"id": name, "size": entry.get("size") or 0, "digest": entry.get("digest")}
            details = entry.get("details") or {}
            if details.get("quantization_level"):
                record["quantization"] = details["quantization_level"]
            if details.get("family"):
                record["arch"] = details["family"]
            if details.get("format"):
                record["compatibility_type"] = details["format"]
            record["publisher"] = "ollama"
            entries.append(record)
        return entries

    def normalize_response(self, body: Any) -> Any:
        return ollama_response_to_openai(body)

    def new_stream_decoder(self) -> NDJSONDecoder:
        return NDJSONDecoder()

    def new_stream_normalizer(self, body: dict[str, Any]) -> Callable[[str], list[str]]:
        normalizer = OllamaChunkNormalizer(model=body.get("model"))

        def normalize(line: str) -> list[str]:
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                return [line]
            if not isinstance(data, dict):
                return [line]
            if data.get("error"):
                raise UpstreamError(
                    f"Ollama stream error: {data['error']}",
                    code="upstream_stream_error",
                    details={"upstream_body": data},
                )
            chunk = normalizer.normalize(data)
            if chunk is None:
                return []
            payloads = [json.dumps(chunk, ensure_ascii=False)]
            if data.get("done"):
                payloads.append(DONE_MARKER)
            return payloads

        return normalize
