"""
Tool Call Dialect Helpers

Ollama and OpenWebUI carry tool-call arguments as JSON objects and may omit
ids and types; OpenAI Chat Completions carries arguments as a JSON string
and requires ids. These helpers convert between the two.
"""

import json
import logging
import uuid
from typing import Any, Optional

logger = logging.getLogger(__name__)


def new_tool_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:24]}"


def arguments_to_string(arguments: Any) -> str:
    """Tool arguments in OpenAI dialect (a JSON string)"""
    if arguments is None:
        return "{}"
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments, ensure_ascii=False)


def arguments_to_object(arguments: Any) -> dict[str, Any]:
    """
    Tool arguments as an object

    Unparsable or non-object arguments degrade to an empty object.
    """
    if isinstance(arguments, dict):
        return arguments
    if not arguments:
        return {}
    if isinstance(arguments, str):
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError:
            logger.warning("Unparsable tool arguments, using empty object: %.200s", arguments)
            return {}
        if isinstance(parsed, dict):
            return parsed
    logger.warning("Tool arguments are not an object, using empty object: %.200r", arguments)
    return {}


def ollama_tools_to_openai(tools: Optional[list[Any]]) -> list[dict[str, Any]]:
    """Normalize Ollama tool definitions to OpenAI function tools"""
    converted: list[dict[str, Any]] = []
    for tool in tools or []:
        if not isinstance(tool, dict):
            continue
        function = tool.get("function") if isinstance(tool.get("function"), dict) else tool
        name = function.get("name")
        if not name:
            continue
        definition: dict[str, Any] = {
            "name": name,
            "description": function.get("description") or "",
        }
        if function.get("parameters") is not None:
            definition["parameters"] = function["parameters"]
        converted.append({"type": "function", "function": definition})
    return converted


def ollama_tool_calls_to_openai(tool_calls: Optional[list[Any]]) -> list[dict[str, Any]]:
    """Ollama tool calls (object arguments, optional ids) to OpenAI tool calls"""
    converted: list[dict[str, Any]] = []
    for position, call in enumerate(tool_calls or []):
        if not isinstance(call, dict):
            continue
        function = call.get("function") or {}
        item: dict[str, Any] = {
            "id": call.get("id") or new_tool_call_id(),
            "type": call.get("type") or "function",
            "function": {
                "name": function.get("name") or "",
                "arguments": arguments_to_string(function.get("arguments")),
            },
        }
        item["index"] = call.get("index", position)
        converted.append(item)
    return converted


def openai_tool_calls_to_ollama(tool_calls: Optional[list[Any]]) -> list[dict[str, Any]]:
    """OpenAI tool calls to Ollama tool calls with object arguments"""
    converted: list[dict[str, Any]] = []
    for call in tool_calls or []:
        if not isinstance(call, dict):
            continue
        function = call.get("function") or {}
        item: dict[str, Any] = {
            "function": {
                "name": function.get("name") or "",
                "arguments": arguments_to_object(function.get("arguments")),
            }
        }
        if call.get("id"):
            item["id"] = call["id"]
        converted.append(item)
    return converted


def normalize_openai_tool_calls(tool_calls: Optional[list[Any]]) -> list[dict[str, Any]]:
    """
    Repair tool calls that claim to be OpenAI style

    OpenWebUI relays whatever the model backend produced, so arguments may
    be objects and type may be missing. Ids are only filled in when the call
    also carries a name; name-less entries are argument continuations.
    """
    normalized: list[dict[str, Any]] = []
    for position, call in enumerate(tool_calls or []):
        if not isinstance(call, dict):
            continue
        item = dict(call)
        function = dict(item.get("function") or {})
        if "arguments" in function and not isinstance(function["arguments"], str):
            function["arguments"] = arguments_to_string(function["arguments"])
        item["function"] = function
        if function.get("name"):
            item.setdefault("type", "function")
            if not item.get("id"):
                item["id"] = new_tool_call_id()
        item.setdefault("index", position)
        normalized.append(item)
    return normalized
