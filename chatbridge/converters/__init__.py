"""
Schema Conversion Module

Request and unary response conversion between the downstream dialects
(Anthropic Messages, Ollama) and the OpenAI Chat Completions upstream shape.
"""

from chatbridge.converters.anthropic import (
    anthropic_to_openai_request,
    map_finish_reason,
    map_model,
    openai_to_anthropic_response,
)
from chatbridge.converters.ollama import (
    OllamaChunkNormalizer,
    ollama_response_to_openai,
    ollama_to_openai_request,
    openai_to_ollama_request,
    openai_to_ollama_response,
)

__all__ = [
    "anthropic_to_openai_request",
    "map_finish_reason",
    "map_model",
    "openai_to_anthropic_response",
    "OllamaChunkNormalizer",
    "ollama_response_to_openai",
    "ollama_to_openai_request",
    "openai_to_ollama_request",
    "openai_to_ollama_response",
]
