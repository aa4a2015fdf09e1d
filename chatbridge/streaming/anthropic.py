"""
OpenAI chunk stream -> Anthropic Messages SSE events
"""

import json
import logging
import uuid
from typing import Any, Callable, Optional

from chatbridge.common.framing import encode_sse_json
from chatbridge.converters.anthropic import map_finish_reason, new_message_id
from chatbridge.streaming.base import StreamPhase, StreamTranslator, first_choice

logger = logging.getLogger(__name__)


class AnthropicStreamTranslator(StreamTranslator):
    """
    Anthropic event state machine

    IDLE -> STARTED -> (BLOCK_OPEN <-> BLOCK_CLOSED)* -> FINISHED

    Text deltas share one text block until another block kind interrupts it;
    every tool call gets its own tool_use block, and argument fragments become
    input_json_delta events on that block.
    """

    def __init__(
        self,
        model: str,
        message_id: Optional[str] = None,
        keep_open_on_tool_use: bool = False,
        id_factory: Callable[[], str] = lambda: f"toolu_{uuid.uuid4().hex[:24]}",
    ):
        super().__init__(model)
        self.message_id = message_id or new_message_id()
        self.keep_open_on_tool_use = keep_open_on_tool_use
        self._id_factory = id_factory

    # ============ event builders ============

    def _message_start(self) -> bytes:
        self.state.phase = StreamPhase.STARTED
        return encode_sse_json(
            {
                "type": "message_start",
                "message": {
                    "id": self.message_id,
                    "type": "message",
                    "role": "assistant",
                    "content": [],
                    "model": self.model,
                    "stop_reason": None,
                    "stop_sequence": None,
                    "usage": {"input_tokens": 1, "output_tokens": 1},
                },
            },
            event="message_start",
        )

    def _open_block(self, content_block: dict[str, Any]) -> bytes:
        self.state.phase = StreamPhase.BLOCK_OPEN
        self.state.block_type = content_block["type"]
        return encode_sse_json(
            {
                "type": "content_block_start",
                "index": self.state.block_index,
                "content_block": content_block,
            },
            event="content_block_start",
        )

    def _close_block(self) -> bytes:
        event = encode_sse_json(
            {"type": "content_block_stop", "index": self.state.block_index},
            event="content_block_stop",
        )
        self.state.phase = StreamPhase.BLOCK_CLOSED
        self.state.block_type = None
        self.state.tool_call_id = None
        self.state.tool_call_index = None
        self.state.block_index += 1
        return event

    def _delta(self, delta: dict[str, Any]) -> bytes:
        return encode_sse_json(
            {"type": "content_block_delta", "index": self.state.block_index, "delta": delta},
            event="content_block_delta",
        )

    def _message_delta(self, finish_reason: Optional[str]) -> bytes:
        self.state.message_delta_sent = True
        stop_reason = map_finish_reason(finish_reason)
        if self.state.tool_use_detected and finish_reason in (None, "stop"):
            stop_reason = "tool_use"
        return encode_sse_json(
            {
                "type": "message_delta",
                "delta": {"stop_reason": stop_reason, "stop_sequence": None},
                "usage": {"output_tokens": self.state.output_tokens},
            },
            event="message_delta",
        )

    # ============ transitions ============

    def on_chunk(self, data: dict[str, Any]) -> list[bytes]:
        events: list[bytes] = []
        choice = first_choice(data)
        if choice is None:
            return events
        delta = choice.get("delta") or {}
        finish_reason = choice.get("finish_reason")
        content = delta.get("content")
        tool_calls = delta.get("tool_calls")

        if not self.state.message_started and (delta.get("role") or content or tool_calls or finish_reason):
            events.append(self._message_start())

        if self.state.message_delta_sent or self.state.finish_reason:
            if content or tool_calls:
                logger.debug("Ignoring content received after the finish signal")
            return events

        if isinstance(content, str) and content:
            events.extend(self._on_text(content))

        if isinstance(tool_calls, list):
            for tool_call in tool_calls:
                if isinstance(tool_call, dict):
                    events.extend(self._on_tool_call(tool_call))

        if finish_reason:
            self.state.finish_reason = finish_reason
            if self.state.block_open:
                events.append(self._close_block())
            # without usage yet, wait for a trailing usage-only chunk before message_delta
            if self.state.output_tokens:
                events.append(self._message_delta(finish_reason))
        return events

    def _on_text(self, text: str) -> list[bytes]:
        events: list[bytes] = []
        if self.state.block_open and self.state.block_type != "text":
            events.append(self._close_block())
        if not self.state.block_open:
            events.append(self._open_block({"type": "text", "text": ""}))
        events.append(self._delta({"type": "text_delta", "text": text}))
        return events

    def _on_tool_call(self, tool_call: dict[str, Any]) -> list[bytes]:
        events: list[bytes] = []
        call_id = tool_call.get("id")
        call_index = tool_call.get("index")
        function = tool_call.get("function") or {}

        is_new_call = (
            not self.state.block_open
            or self.state.block_type != "tool_use"
            or (call_id is not None and call_id != self.state.tool_call_id)
            or (
                call_id is None
                and call_index is not None
                and self.state.tool_call_index is not None
                and call_index != self.state.tool_call_index
            )
        )
        if is_new_call:
            if self.state.block_open:
                events.append(self._close_block())
            tool_id = call_id or self._id_factory()
            events.append(
                self._open_block(
                    {
                        "type": "tool_use",
                        "id": tool_id,
                        "name": function.get("name") or "",
                        "input": {},
                    }
                )
            )
            self.state.tool_call_id = tool_id
            self.state.tool_call_index = call_index
            self.state.tool_use_detected = True

        arguments = function.get("arguments")
        if arguments is not None and not isinstance(arguments, str):
            arguments = json.dumps(arguments, ensure_ascii=False)
        if arguments:
            events.append(self._delta({"type": "input_json_delta", "partial_json": arguments}))
        return events

    def finish(self) -> list[bytes]:
        if self.state.finished:
            return []
        events: list[bytes] = []
        if not self.state.message_started:
            events.append(self._message_start())
        if self.state.block_open:
            events.append(self._close_block())
        if not self.state.message_delta_sent:
            events.append(self._message_delta(self.state.finish_reason))
        if self.keep_open_on_tool_use and self.state.tool_use_detected:
            logger.debug("Tool use detected, leaving stream without message_stop")
        else:
            events.append(encode_sse_json({"type": "message_stop"}, event="message_stop"))
        self.state.phase = StreamPhase.FINISHED
        return events

    def error(self, message: str) -> list[bytes]:
        if self.state.finished:
            return []
        self.state.phase = StreamPhase.FINISHED
        return [
            encode_sse_json(
                {"type": "error", "error": {"type": "api_error", "message": message}},
                event="error",
            )
        ]
