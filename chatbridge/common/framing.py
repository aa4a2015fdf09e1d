"""
Stream Framing Codecs

Incremental decoders for the two upstream framings (SSE data lines and
NDJSON) and the matching encoders used for downstream output.
"""

import json
from typing import Any, Optional

DONE_MARKER = "[DONE]"


class _LineBuffer:
    """Splits a byte stream into complete lines, CRLF tolerant"""

    def __init__(self) -> None:
        self._buf = b""

    def feed(self, chunk: bytes) -> list[str]:
        if not chunk:
            return []
        data = self._buf + chunk
        parts = data.split(b"\n")
        # Keep last incomplete line; decoding only complete lines keeps multi-byte chars intact
        self._buf = parts.pop()
        return [part.rstrip(b"\r").decode("utf-8", errors="replace") for part in parts]

    def flush(self) -> list[str]:
        rest, self._buf = self._buf, b""
        rest = rest.rstrip(b"\r")
        if not rest:
            return []
        return [rest.decode("utf-8", errors="replace")]


class SSEDecoder:
    """
    SSE Decoder: extracts data payloads from a bytes stream.

    - Every data: line is one payload (upstreams put one JSON object per line)
    - Supports CRLF (\r\n)
    - event:, id:, retry: and comment lines are ignored
    """

    def __init__(self) -> None:
        self._lines = _LineBuffer()

    def feed(self, chunk: bytes) -> list[str]:
        """Append bytes and return the data payloads completed by them"""
        return self._extract(self._lines.feed(chunk))

    def flush(self) -> list[str]:
        """Return a trailing payload not terminated by a newline"""
        return self._extract(self._lines.flush())

    @staticmethod
    def _extract(lines: list[str]) -> list[str]:
        payloads: list[str] = []
        for line in lines:
            if not line.startswith("data:"):
                continue
            value = line[5:].strip()
            if value:
                payloads.append(value)
        return payloads


class NDJSONDecoder:
    """Newline-delimited JSON decoder, returns raw non-empty lines"""

    def __init__(self) -> None:
        self._lines = _LineBuffer()

    def feed(self, chunk: bytes) -> list[str]:
        return [line.strip() for line in self._lines.feed(chunk) if line.strip()]

    def flush(self) -> list[str]:
        return [line.strip() for line in self._lines.flush() if line.strip()]


def encode_sse_data(payload: str) -> bytes:
    """Encode string as SSE data line."""
    return f"data: {payload}\n\n".encode("utf-8")


def encode_sse_json(obj: dict[str, Any], event: Optional[str] = None) -> bytes:
    """Encode dict as SSE JSON data line, optionally preceded by an event line."""
    data = encode_sse_data(json.dumps(obj, ensure_ascii=False))
    if event:
        return f"event: {event}\n".encode("utf-8") + data
    return data


def encode_ndjson(obj: dict[str, Any]) -> bytes:
    """Encode dict as one NDJSON line."""
    return (json.dumps(obj, ensure_ascii=False) + "\n").encode("utf-8")
