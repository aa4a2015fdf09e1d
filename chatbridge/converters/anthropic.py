"""
Anthropic Messages <-> OpenAI Chat Completions Conversion

Request conversion (downstream Anthropic -> upstream OpenAI) and unary
response conversion (upstream OpenAI -> downstream Anthropic).
"""

import json
import logging
import uuid
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from chatbridge.common.errors import ConversionError
from chatbridge.converters.messages import (
    insert_tool_result_fillers,
    strip_tool_calls,
    validate_tool_calls,
)
from chatbridge.converters.tool_calls import arguments_to_object
from chatbridge.domain.anthropic import (
    AnthropicMessage,
    AnthropicMessagesRequest,
    AnthropicSystemBlock,
    AnthropicTool,
    AnthropicToolChoice,
    ImageBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from chatbridge.domain.openai import OpenAIChatResponse

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "anthropic/claude-3.5-sonnet"


def map_model(model: Optional[str]) -> str:
    """
    Map a friendly Anthropic model name to a vendor/model path id

    Ids that already contain "/" are passed through; unknown names are
    returned unchanged.
    """
    if not model or not model.strip():
        return DEFAULT_MODEL
    if "/" in model:
        return model

    normalized = model.lower()
    if "haiku" in normalized:
        if "3.5" in normalized or "3-5" in normalized:
            return "anthropic/claude-3.5-haiku"
        return "anthropic/claude-3-haiku-20240307"
    if "sonnet" in normalized:
        if "3.5" in normalized or "3-5" in normalized:
            return "anthropic/claude-3.5-sonnet"
        if "4" in normalized:
            # sonnet 4 ids route to 3.5
            return "anthropic/claude-3.5-sonnet"
        return "anthropic/claude-3-sonnet-20240229"
    if "opus" in normalized:
        return "anthropic/claude-3-opus-20240229"
    return model


def map_finish_reason(finish_reason: Optional[str]) -> str:
    """Map OpenAI finish reason to Anthropic stop reason."""
    if finish_reason == "tool_calls":
        return "tool_use"
    if finish_reason == "length":
        return "max_tokens"
    return "end_turn"


def convert_system(
    system: Union[str, list[AnthropicSystemBlock], None],
    model: str,
) -> list[dict[str, Any]]:
    """
    Flatten the system prompt into leading system-role messages

    Each part is wrapped as a text content part; Claude targets get an
    ephemeral cache_control marker so upstream prompt caching applies.
    """
    if system is None:
        return []
    if isinstance(system, str):
        texts = [system]
    else:
        texts = [block.text for block in system]

    cacheable = "claude" in model.lower()
    messages: list[dict[str, Any]] = []
    for text in texts:
        if not text:
            continue
        part: dict[str, Any] = {"type": "text", "text": text}
        if cacheable:
            part["cache_control"] = {"type": "ephemeral"}
        messages.append({"role": "system", "content": [part]})
    return messages


def _tool_result_text(block: ToolResultBlock) -> str:
    content = block.content
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    texts = []
    for part in content:
        if part.get("type") == "text":
            texts.append(part.get("text", ""))
        else:
            texts.append(json.dumps(part, ensure_ascii=False))
    return "\n".join(texts)


def _image_part(block: ImageBlock) -> Optional[dict[str, Any]]:
    source = block.source
    if source.get("type") == "base64" and source.get("data"):
        media_type = source.get("media_type") or "image/png"
        url = f"data:{media_type};base64,{source['data']}"
    elif source.get("type") == "url" and source.get("url"):
        url = source["url"]
    else:
        logger.warning("Dropping image block with unsupported source type: %s", source.get("type"))
        return None
    return {"type": "image_url", "image_url": {"url": url}}


def _convert_user(message: AnthropicMessage) -> list[dict[str, Any]]:
    if isinstance(message.content, str):
        return [{"role": "user", "content": message.content}]

    tool_messages: list[dict[str, Any]] = []
    texts: list[str] = []
    images: list[dict[str, Any]] = []
    for block in message.content:
        if isinstance(block, ToolResultBlock):
            tool_messages.append(
                {
                    "role": "tool",
                    "tool_call_id": block.tool_use_id,
                    "content": _tool_result_text(block),
                }
            )
        elif isinstance(block, TextBlock):
            if block.text:
                texts.append(block.text)
        elif isinstance(block, ImageBlock):
            part = _image_part(block)
            if part is not None:
                images.append(part)

    converted = list(tool_messages)
    if images:
        parts: list[dict[str, Any]] = [{"type": "text", "text": text} for text in texts]
        converted.append({"role": "user", "content": parts + images})
    elif texts:
        converted.append({"role": "user", "content": "\n".join(texts)})
    return converted


def _convert_assistant(message: AnthropicMessage) -> list[dict[str, Any]]:
    if isinstance(message.content, str):
        return [{"role": "assistant", "content": message.content}]

    texts: list[str] = []
    tool_calls: list[dict[str, Any]] = []
    for block in message.content:
        if isinstance(block, TextBlock):
            texts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            tool_calls.append(
                {
                    "id": block.id,
                    "type": "function",
                    "function": {
                        "name": block.name,
                        "arguments": json.dumps(block.input if block.input is not None else {}, ensure_ascii=False),
                    },
                }
            )
        # thinking blocks are not forwarded upstream

    text = "\n".join(texts).strip()
    converted: dict[str, Any] = {"role": "assistant", "content": text or None}
    if tool_calls:
        converted["tool_calls"] = tool_calls
    elif converted["content"] is None:
        converted["content"] = ""
    return [converted]


def convert_messages(messages: list[AnthropicMessage]) -> list[dict[str, Any]]:
    """Convert conversation turns; one Anthropic turn may yield several OpenAI messages"""
    converted: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "user":
            converted.extend(_convert_user(message))
        else:
            converted.extend(_convert_assistant(message))
    return converted


def convert_tools(tools: Optional[list[AnthropicTool]]) -> list[dict[str, Any]]:
    """Anthropic tool definitions to OpenAI function tools"""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description or "",
                "parameters": tool.input_schema,
            },
        }
        for tool in tools or []
    ]


def convert_tool_choice(choice: Optional[AnthropicToolChoice]) -> Any:
    if choice is None:
        return None
    if choice.type == "any":
        return "required"
    if choice.type == "tool" and choice.name:
        return {"type": "function", "function": {"name": choice.name}}
    if choice.type == "none":
        return "none"
    return "auto"


def anthropic_to_openai_request(
    request: AnthropicMessagesRequest,
    model: str,
    stream: bool,
) -> dict[str, Any]:
    """
    Build the upstream OpenAI chat body for an Anthropic request

    Args:
        request: Validated Anthropic request
        model: Resolved upstream model id
        stream: Whether the upstream call streams

    Returns:
        dict: OpenAI Chat Completions request body
    """
    tools = convert_tools(request.tools)
    messages = convert_system(request.system, model) + convert_messages(request.messages or [])
    if not tools:
        messages = strip_tool_calls(messages)
    messages = insert_tool_result_fillers(validate_tool_calls(messages))

    body: dict[str, Any] = {"model": model, "messages": messages, "stream": stream}
    if request.max_tokens is not None:
        body["max_tokens"] = request.max_tokens
    if request.temperature is not None:
        body["temperature"] = request.temperature
    if request.top_p is not None:
        body["top_p"] = request.top_p
    if request.stop_sequences:
        body["stop"] = request.stop_sequences
    if tools:
        body["tools"] = tools
        tool_choice = convert_tool_choice(request.tool_choice)
        if tool_choice is not None:
            body["tool_choice"] = tool_choice
    return body


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:24]}"


def openai_to_anthropic_response(
    payload: Any,
    model: str,
    message_id: Optional[str] = None,
) -> dict[str, Any]:
    """
    Convert a unary OpenAI chat completion to an Anthropic message

    Raises:
        ConversionError: payload has no usable choices
    """
    if not isinstance(payload, dict):
        raise ConversionError(
            "Upstream response is not a JSON object",
            details={"upstream_body": payload if isinstance(payload, str) else repr(payload)},
        )
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
    content: list[dict[str, Any]] = []
    text = choice.message.text()
    if text:
        content.append({"type": "text", "text": text})
    for call in choice.message.tool_calls or []:
        content.append(
            {
                "type": "tool_use",
                "id": call.id or f"toolu_{uuid.uuid4().hex[:24]}",
                "name": call.function.name or "",
                "input": arguments_to_object(call.function.arguments),
            }
        )
    if not content:
        content.append({"type": "text", "text": ""})

    has_tool_use = any(block["type"] == "tool_use" for block in content)
    stop_reason = "tool_use" if has_tool_use else map_finish_reason(choice.finish_reason)
    usage = response.usage
    return {
        "id": message_id or new_message_id(),
        "type": "message",
        "role": "assistant",
        "model": model,
        "content": content,
        "stop_reason": stop_reason,
        "stop_sequence": None,
        "usage": {
            "input_tokens": usage.prompt_tokens if usage else 0,
            "output_tokens": usage.completion_tokens if usage else 0,
        },
    }
