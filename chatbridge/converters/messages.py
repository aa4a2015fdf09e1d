"""
OpenAI Message List Repair

Passes over a fully built OpenAI message list that keep tool calls and tool
messages correctly paired before the list is sent upstream.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

TOOL_RESULT_FILLER = "I've processed the tool results."


def _call_ids(message: dict[str, Any]) -> set[str]:
    return {call.get("id") for call in message.get("tool_calls") or [] if call.get("id")}


def validate_tool_calls(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Enforce tool call / tool message pairing

    An assistant tool call survives only when a tool message answering it
    appears in the run of tool messages right after the assistant message.
    A tool message survives only when the nearest preceding non-tool message
    is an assistant message carrying its call id. Assistant messages with
    neither content nor tool calls are dropped.
    """
    validated: list[dict[str, Any]] = []
    for i, message in enumerate(messages):
        role = message.get("role")

        if role == "assistant" and message.get("tool_calls"):
            answered: set[str] = set()
            j = i + 1
            while j < len(messages) and messages[j].get("role") == "tool":
                answered.add(messages[j].get("tool_call_id"))
                j += 1

            current = dict(message)
            kept = [call for call in message["tool_calls"] if call.get("id") in answered]
            dropped = len(message["tool_calls"]) - len(kept)
            if dropped:
                logger.debug("Dropping %d unanswered tool call(s) from assistant message", dropped)
            if kept:
                current["tool_calls"] = kept
            else:
                current.pop("tool_calls", None)

            if current.get("content") or current.get("tool_calls"):
                validated.append(current)
            continue

        if role == "tool":
            k = i - 1
            while k >= 0 and messages[k].get("role") == "tool":
                k -= 1
            if k >= 0 and messages[k].get("role") == "assistant" and message.get("tool_call_id") in _call_ids(messages[k]):
                validated.append(message)
            else:
                logger.debug("Dropping orphaned tool message: tool_call_id=%s", message.get("tool_call_id"))
            continue

        if role == "assistant" and not message.get("content"):
            logger.debug("Dropping assistant message with neither content nor tool calls")
            continue

        validated.append(message)
    return validated


def insert_tool_result_fillers(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Insert a filler assistant turn wherever a tool message is directly followed by a user message"""
    result: list[dict[str, Any]] = []
    for i, message in enumerate(messages):
        result.append(message)
        if (
            message.get("role") == "tool"
            and i + 1 < len(messages)
            and messages[i + 1].get("role") == "user"
        ):
            result.append({"role": "assistant", "content": TOOL_RESULT_FILLER})
    return result


def strip_tool_calls(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Remove tool_calls from every message"""
    stripped = []
    for message in messages:
        if "tool_calls" in message:
            message = {key: value for key, value in message.items() if key != "tool_calls"}
            if message.get("content") is None:
                message["content"] = ""
        stripped.append(message)
    return stripped



def drop_unused_tooling(body: dict[str, Any]) -> dict[str, Any]:
    """
    Remove tool plumbing from a chat body that declares no tools

    Some backends reject tool_choice or tool_calls when tools is empty or null.
    Returns a new body; bodies with tools are returned unchanged.
    """
    if body.get("tools"):
        return body
    cleaned = {key: value for key, value in body.items() if key not in ("tools", "tool_choice")}
    if isinstance(cleaned.get("messages"), list):
        cleaned["messages"] = [
            {key: value for key, value in message.items() if key != "tool_calls"}
            if isinstance(message, dict)
            else message
            for message in cleaned["messages"]
        ]
    return cleaned
