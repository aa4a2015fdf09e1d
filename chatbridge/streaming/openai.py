"""
OpenAI chunk stream -> OpenAI SSE (pass-through)
"""

import json
from typing import Any

from chatbridge.common.framing import DONE_MARKER, encode_sse_data, encode_sse_json
from chatbridge.streaming.base import StreamPhase, StreamTranslator


class OpenAIStreamPassthrough(StreamTranslator):
    """
    Re-frames upstream chunks unchanged

    Chunks are re-encoded after parsing so normalized upstream output and
    skipped garbage behave the same as in the translating streams.
    """

    def on_chunk(self, data: dict[str, Any]) -> list[bytes]:
        if self.state.phase == StreamPhase.IDLE:
            self.state.phase = StreamPhase.STARTED
        return [encode_sse_data(json.dumps(data, ensure_ascii=False))]

    def finish(self) -> list[bytes]:
        if self.state.finished:
            return []
        self.state.phase = StreamPhase.FINISHED
        return [encode_sse_data(DONE_MARKER)]

    def error(self, message: str) -> list[bytes]:
        if self.state.finished:
            return []
        self.state.phase = StreamPhase.FINISHED
        return [
            encode_sse_json({"error": {"message": message, "type": "api_error", "code": "upstream_error"}}),
            encode_sse_data(DONE_MARKER),
        ]
