"""
Stream Translation Module

Stateful per-call translators from the upstream OpenAI chunk stream to each
downstream streaming dialect.
"""

from chatbridge.streaming.anthropic import AnthropicStreamTranslator
from chatbridge.streaming.base import StreamPhase, StreamState, StreamTranslator
from chatbridge.streaming.ollama import OllamaStreamTranslator
from chatbridge.streaming.openai import OpenAIStreamPassthrough

__all__ = [
    "AnthropicStreamTranslator",
    "OllamaStreamTranslator",
    "OpenAIStreamPassthrough",
    "StreamPhase",
    "StreamState",
    "StreamTranslator",
]
