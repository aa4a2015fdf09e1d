"""
Ollama <-> OpenAI Chat Completions Conversion

Covers both directions the proxy needs:
- Ollama downstream: /api/chat requests to OpenAI bodies, OpenAI responses back to Ollama
- Ollama-shaped upstreams (Ollama native, OpenWebUI): requests to Ollama
  bodies, Ollama responses and NDJSON chunks to OpenAI shape
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from chatbridge.common.errors import ConversionError
from chatbridge.converters.messages import (
    insert_tool_result_fillers,
    strip_tool_calls,
    validate_tool_calls,
)
from chatbridge.converters.tool_calls import (
    new_tool_call_id,
    normalize_openai_tool_calls,
    ollama_tool_calls_to_openai,
    ollama_tools_to_openai,
    openai_tool_calls_to_ollama,
)
from chatbridge.domain.ollama import OllamaChatRequest, OllamaMessage
from chatbridge.domain.openai import OpenAIChatResponse

logger = logging.getLogger(__name__)


def ollama_timestamp() -> str:
    """RFC 3339 timestamp the way Ollama reports created_at"""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ============ Ollama downstream ============


def _ollama_message_to_openai(
    message: OllamaMessage,
    pending_calls: list[dict[str, Any]],
) -> dict[str, Any]:
    role = message.role
    content = message.content or ""

    if role == "assistant" and message.tool_calls:
        tool_calls = ollama_tool_calls_to_openai(message.tool_calls)
        for call in tool_calls:
            call.pop("index", None)
        pending_calls[:] = [
            {"id": call["id"], "name": call["function"]["name"]} for call in tool_calls
        ]
        return {"role": "assistant", "content": content or None, "tool_calls": tool_calls}

    if role == "tool":
        # Ollama clients answer calls by name or by position, not always by id
        tool_call_id = message.tool_call_id
        if not tool_call_id and pending_calls:
            match = next(
                (call for call in pending_calls if message.tool_name and call["name"] == message.tool_name),
                pending_calls[0],
            )
            pending_calls.remove(match)
            tool_call_id = match["id"]
        return {"role": "tool", "tool_call_id": tool_call_id or new_tool_call_id(), "content": content}

    if message.images:
        parts: list[dict[str, Any]] = []
        if content:
            parts.append({"type": "text", "text": content})
        for image in message.images:
            url = image if image.startswith("data:") else f"data:image/png;base64,{image}"
            parts.append({"type": "image_url", "image_url": {"url": url}})
        return {"role": role, "content": parts}

    return {"role": role, "content": content}


def _response_format(format_value: Any) -> Optional[dict[str, Any]]:
    if format_value == "json":
        return {"type": "json_object"}
    if isinstance(format_value, dict):
        return {"type": "json_schema", "json_schema": {"name": "response", "schema": format_value}}
    return None


def ollama_to_openai_request(
    request: OllamaChatRequest,
    model: str,
    stream: bool,
) -> dict[str, Any]:
    """
    Build the upstream OpenAI chat body for an Ollama /api/chat request

    Args:
        request: Validated Ollama request
        model: Resolved upstream model id
        stream: Whether the upstream call streams

    Returns:
        dict: OpenAI Chat Completions request body
    """
    pending_calls: list[dict[str, Any]] = []
    messages = [_ollama_message_to_openai(message, pending_calls) for message in request.messages or []]
    tools = ollama_tools_to_openai(request.tools)
    if not tools:
        messages = strip_tool_calls(messages)
    messages = insert_tool_result_fillers(validate_tool_calls(messages))

    body: dict[str, Any] = {"model": model, "messages": messages, "stream": stream}
    options = request.options or {}
    if options.get("temperature") is not None:
        body["temperature"] = options["temperature"]
    if options.get("top_p") is not None:
        body["top_p"] = options["top_p"]
    if options.get("num_predict") is not None and options["num_predict"] > 0:
        body["max_tokens"] = options["num_predict"]
    if options.get("stop"):
        body["stop"] = options["stop"]
    if options.get("seed") is not None:
        body["seed"] = options["seed"]
    response_format = _response_format(request.format)
    if response_format:
        body["response_format"] = response_format
    if tools:
        body["tools"] = tools
    return body


def _done_reason(finish_reason: Optional[str]) -> str:
    if finish_reason == "length":
        return "length"
    return "stop"


def openai_to_ollama_response(payload: Any, model: str) -> dict[str, Any]:
    """
    Convert a unary OpenAI chat completion to an Ollama /api/chat response

    Raises:
        ConversionError: payload has no usable choices
    """
    if not isinstance(payload, dict):
        raise ConversionError("Upstream response is not a JSON object")
    try:
        response = OpenAIChatResponse.model_validate(payload)
    except PydanticValidationError as e:
        raise ConversionError(
            "Upstream response has an unrecognised shape",
            details={"errors": e.errors(include_url=False)},
        )
    if not response.choices:
        raise ConversionError("Upstream response contains no choices", details={"upstream_body": payload})

    choice = response.choices[0]
    message: dict[str, Any] = {"role": "assistant", "content": choice.message.text()}
    if choice.message.tool_calls:
        message["tool_calls"] = openai_tool_calls_to_ollama(
            [call.model_dump(exclude_none=True) for call in choice.message.tool_calls]
        )

    result: dict[str, Any] = {
        "model": model,
        "created_at": ollama_timestamp(),
        "message": message,
        "done": True,
        "done_reason": _done_reason(choice.finish_reason),
    }
    if choice.finish_reason:
        result["finish_reason"] = choice.finish_reason
    if response.usage:
        result["prompt_eval_count"] = response.usage.prompt_tokens
        result["eval_count"] = response.usage.completion_tokens
    return result


# ============ Ollama-shaped upstreams ============


def _openai_content_to_ollama(content: Any) -> tuple[str, list[str]]:
    if isinstance(content, str):
        return content, []
    texts: list[str] = []
    images: list[str] = []
    for part in content or []:
        if not isinstance(part, dict):
            continue
        if part.get("type") == "text":
            texts.append(part.get("text", ""))
        elif part.get("type") == "image_url":
            url = (part.get("image_url") or {}).get("url", "")
            if url.startswith("data:") and "," in url:
                images.append(url.split(",", 1)[1])
    return "\n".join(texts), images


def openai_to_ollama_request(body: dict[str, Any]) -> dict[str, Any]:
    """OpenAI chat body to an Ollama native /api/chat body"""
    messages = []
    for message in body.get("messages") or []:
        content, images = _openai_content_to_ollama(message.get("content"))
        converted: dict[str, Any] = {"role": message.get("role"), "content": content}
        if images:
            converted["images"] = images
        if message.get("tool_calls"):
            converted["tool_calls"] = openai_tool_calls_to_ollama(message["tool_calls"])
        if message.get("role") == "tool" and message.get("tool_call_id"):
            converted["tool_call_id"] = message["tool_call_id"]
        messages.append(converted)

    ollama_body: dict[str, Any] = {
        "model": body.get("model"),
        "messages": messages,
        "stream": bool(body.get("stream")),
    }
    options: dict[str, Any] = {}
    if body.get("temperature") is not None:
        options["temperature"] = body["temperature"]
    if body.get("top_p") is not None:
        options["top_p"] = body["top_p"]
    if body.get("max_tokens") is not None:
        options["num_predict"] = body["max_tokens"]
    if body.get("stop"):
        options["stop"] = body["stop"] if isinstance(body["stop"], list) else [body["stop"]]
    if body.get("seed") is not None:
        options["seed"] = body["seed"]
    if options:
        ollama_body["options"] = options
    if body.get("tools"):
        ollama_body["tools"] = body["tools"]
    response_format = body.get("response_format") or {}
    if response_format.get("type") == "json_object":
        ollama_body["format"] = "json"
    elif response_format.get("type") == "json_schema":
        ollama_body["format"] = (response_format.get("json_schema") or {}).get("schema", "json")
    return ollama_body


def _finish_reason_from_ollama(data: dict[str, Any], saw_tool_calls: bool) -> str:
    if saw_tool_calls:
        return "tool_calls"
    reason = data.get("finish_reason") or data.get("done_reason")
    if reason in ("length", "tool_calls"):
        return reason
    return "stop"


def ollama_response_to_openai(data: Any) -> Any:
    """
    Unary Ollama-shaped response to an OpenAI chat completion

    Responses that already carry choices only get their tool calls repaired;
    anything unrecognised is returned unchanged for the caller to reject.
    """
    if not isinstance(data, dict):
        return data
    if "choices" in data:
        for choice in data.get("choices") or []:
            message = choice.get("message") if isinstance(choice, dict) else None
            if isinstance(message, dict) and message.get("tool_calls"):
                message["tool_calls"] = normalize_openai_tool_calls(message["tool_calls"])
                for call in message["tool_calls"]:
                    call.pop("index", None)
        return data
    message = data.get("message")
    if not isinstance(message, dict):
        return data

    tool_calls = ollama_tool_calls_to_openai(message.get("tool_calls"))
    for call in tool_calls:
        call.pop("index", None)
    openai_message: dict[str, Any] = {"role": "assistant", "content": message.get("content") or ""}
    if tool_calls:
        openai_message["tool_calls"] = tool_calls
    response: dict[str, Any] = {
        "id": f"chatcmpl-{uuid.uuid4().hex[:24]}",
        "object": "chat.completion",
        "created": int(time.time()),
        "model": data.get("model"),
        "choices": [
            {
                "index": 0,
                "message": openai_message,
                "finish_reason": _finish_reason_from_ollama(data, bool(tool_calls)),
            }
        ],
    }
    if "prompt_eval_count" in data or "eval_count" in data:
        prompt_tokens = data.get("prompt_eval_count") or 0
        completion_tokens = data.get("eval_count") or 0
        response["usage"] = {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        }
    return response


class OllamaChunkNormalizer:
    """
    Rewrites one upstream stream's chunks into OpenAI chunk objects

    Handles Ollama NDJSON objects ({"message": ..., "done": ...}) and
    OpenAI-shaped chunks whose tool calls use Ollama conventions. One
    instance per upstream stream.
    """

    def __init__(self, model: Optional[str] = None):
        self.model = model
        self.chunk_id = f"chatcmpl-{uuid.uuid4().hex[:24]}"
        self.created = int(time.time())
        self._role_sent = False
        self._tool_call_count = 0

    def normalize(self, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Return the OpenAI chunk for data, or None when it carries nothing usable"""
        if "choices" in data:
            for choice in data.get("choices") or []:
                delta = choice.get("delta") if isinstance(choice, dict) else None
                if isinstance(delta, dict) and delta.get("tool_calls"):
                    delta["tool_calls"] = normalize_openai_tool_calls(delta["tool_calls"])
            return data
        if "message" not in data and "done" not in data:
            return None

        message = data.get("message") or {}
        delta: dict[str, Any] = {}
        if not self._role_sent:
            delta["role"] = "assistant"
            self._role_sent = True
        if message.get("content"):
            delta["content"] = message["content"]

        tool_calls = message.get("tool_calls")
        if tool_calls:
            converted = ollama_tool_calls_to_openai(tool_calls)
            # Ollama sends every call complete; indices continue across chunks
            for call in converted:
                call["index"] = self._tool_call_count
                self._tool_call_count += 1
            delta["tool_calls"] = converted

        finish_reason = None
        if data.get("done"):
            finish_reason = _finish_reason_from_ollama(data, self._tool_call_count > 0)

        chunk: dict[str, Any] = {
            "id": self.chunk_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": data.get("model") or self.model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }
        if data.get("done") and ("prompt_eval_count" in data or "eval_count" in data):
            prompt_tokens = data.get("prompt_eval_count") or 0
            completion_tokens = data.get("eval_count") or 0
            chunk["usage"] = {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            }
        return chunk
