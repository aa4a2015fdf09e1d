"""
Stream Translator Base

A translator turns the ordered data payloads of one upstream OpenAI chat
stream into downstream wire bytes. One instance per call; it is never
shared between requests.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from chatbridge.common.framing import DONE_MARKER

logger = logging.getLogger(__name__)


class StreamPhase(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    BLOCK_OPEN = "block_open"
    BLOCK_CLOSED = "block_closed"
    FINISHED = "finished"


@dataclass
class StreamState:
    """
    Per-call stream bookkeeping

    block_index only ever grows: it is incremented once per closed block.
    """

    phase: StreamPhase = StreamPhase.IDLE
    block_index: int = 0
    # "text" | "tool_use" | None
    block_type: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_call_index: Optional[int] = None
    message_delta_sent: bool = False
    tool_use_detected: bool = False
    finish_reason: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def message_started(self) -> bool:
        return self.phase != StreamPhase.IDLE

    @property
    def block_open(self) -> bool:
        return self.phase == StreamPhase.BLOCK_OPEN

    @property
    def finished(self) -> bool:
        return self.phase == StreamPhase.FINISHED


class StreamTranslator(ABC):
    """
    Upstream chunk to downstream event translator

    feed() takes one SSE data payload (a chat.completion.chunk JSON string or
    the [DONE] marker) and returns the encoded downstream bytes it produces,
    possibly none. finish() terminates the downstream stream and is
    idempotent; error() renders a terminal error event.
    """

    media_type = "text/event-stream"

    def __init__(self, model: str):
        self.model = model
        self.state = StreamState()

    @property
    def finished(self) -> bool:
        return self.state.finished

    @property
    def tool_use_detected(self) -> bool:
        return self.state.tool_use_detected

    def feed(self, payload: str) -> list[bytes]:
        if self.state.finished:
            return []
        payload = payload.strip()
        if not payload:
            return []
        if payload == DONE_MARKER:
            return self.finish()
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Skipping unparsable stream chunk: %.200s", payload)
            return []
        if not isinstance(data, dict):
            logger.warning("Skipping non-object stream chunk: %.200s", payload)
            return []
        self._record_usage(data)
        return self.on_chunk(data)

    def _record_usage(self, data: dict[str, Any]) -> None:
        usage = data.get("usage")
        if isinstance(usage, dict):
            self.state.input_tokens = usage.get("prompt_tokens") or self.state.input_tokens
            self.state.output_tokens = usage.get("completion_tokens") or self.state.output_tokens

    @abstractmethod
    def on_chunk(self, data: dict[str, Any]) -> list[bytes]:
        """Translate one parsed upstream chunk"""

    @abstractmethod
    def finish(self) -> list[bytes]:
        """Terminate the downstream stream"""

    @abstractmethod
    def error(self, message: str) -> list[bytes]:
        """Render a terminal error for a stream that already started"""


def first_choice(data: dict[str, Any]) -> Optional[dict[str, Any]]:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    return choices[0]
