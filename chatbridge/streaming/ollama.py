"""
OpenAI chunk stream -> Ollama NDJSON lines
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from chatbridge.common.framing import encode_ndjson
from chatbridge.converters.ollama import ollama_timestamp
from chatbridge.converters.tool_calls import arguments_to_object, arguments_to_string
from chatbridge.streaming.base import StreamPhase, StreamTranslator, first_choice

logger = logging.getLogger(__name__)


@dataclass
class _PendingToolCall:
    id: Optional[str] = None
    name: str = ""
    arguments: str = ""


class OllamaStreamTranslator(StreamTranslator):
    """
    Ollama chat stream framing

    Text is forwarded as it arrives. Ollama clients expect complete tool
    calls, so argument fragments are buffered per call and released as one
    line when the finish signal arrives. Exactly one done:true line ends the
    stream.
    """

    media_type = "application/x-ndjson"

    def __init__(self, model: str, clock: Callable[[], str] = ollama_timestamp):
        super().__init__(model)
        self._clock = clock
        self._tool_calls: dict[int, _PendingToolCall] = {}
        self._last_tool_key: Optional[int] = None

    def _line(self, message: dict[str, Any], done: bool = False, **extra: Any) -> bytes:
        line: dict[str, Any] = {
            "model": self.model,
            "created_at": self._clock(),
            "message": message,
            "done": done,
        }
        line.update(extra)
        return encode_ndjson(line)

    def on_chunk(self, data: dict[str, Any]) -> list[bytes]:
        events: list[bytes] = []
        choice = first_choice(data)
        if choice is None:
            return events
        if self.state.phase == StreamPhase.IDLE:
            self.state.phase = StreamPhase.STARTED

        delta = choice.get("delta") or {}
        content = delta.get("content")
        if isinstance(content, str) and content:
            events.append(self._line({"role": "assistant", "content": content}))

        for tool_call in delta.get("tool_calls") or []:
            if isinstance(tool_call, dict):
                self._buffer_tool_call(tool_call)

        finish_reason = choice.get("finish_reason")
        if finish_reason:
            self.state.finish_reason = finish_reason
            events.extend(self._flush_tool_calls())
        return events

    def _buffer_tool_call(self, tool_call: dict[str, Any]) -> None:
        function = tool_call.get("function") or {}
        key = tool_call.get("index")
        if key is None:
            # No index: a new id or a name starts a new call, anything else continues the last one
            if tool_call.get("id") or function.get("name") or self._last_tool_key is None:
                key = len(self._tool_calls)
                while key in self._tool_calls:
                    key += 1
            else:
                key = self._last_tool_key
        pending = self._tool_calls.setdefault(key, _PendingToolCall())
        self._last_tool_key = key
        self.state.tool_use_detected = True

        if tool_call.get("id"):
            pending.id = tool_call["id"]
        if function.get("name"):
            pending.name = function["name"]
        arguments = function.get("arguments")
        if isinstance(arguments, dict):
            pending.arguments = arguments_to_string(arguments)
        elif isinstance(arguments, str):
            pending.arguments += arguments

    def _flush_tool_calls(self) -> list[bytes]:
        if not self._tool_calls:
            return []
        tool_calls = []
        for key in sorted(self._tool_calls):
            pending = self._tool_calls[key]
            call: dict[str, Any] = {
                "function": {
                    "name": pending.name,
                    "arguments": arguments_to_object(pending.arguments),
                }
            }
            if pending.id:
                call["id"] = pending.id
            tool_calls.append(call)
        self._tool_calls.clear()
        self._last_tool_key = None
        return [self._line({"role": "assistant", "content": "", "tool_calls": tool_calls})]

    def finish(self) -> list[bytes]:
        if self.state.finished:
            return []
        events = self._flush_tool_calls()
        finish_reason = self.state.finish_reason or ("tool_calls" if self.state.tool_use_detected else "stop")
        extra: dict[str, Any] = {
            "done_reason": "length" if finish_reason == "length" else "stop",
            "finish_reason": finish_reason,
        }
        if self.state.input_tokens or self.state.output_tokens:
            extra["prompt_eval_count"] = self.state.input_tokens
            extra["eval_count"] = self.state.output_tokens
        events.append(self._line({"role": "assistant", "content": ""}, done=True, **extra))
        self.state.phase = StreamPhase.FINISHED
        return events

    def error(self, message: str) -> list[bytes]:
        if self.state.finished:
            return []
        self.state.phase = StreamPhase.FINISHED
        return [encode_ndjson({"error": message, "done": True})]
