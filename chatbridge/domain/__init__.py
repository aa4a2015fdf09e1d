"""
Domain Model Module
"""

from chatbridge.domain.anthropic import (
    AnthropicMessage,
    AnthropicMessagesRequest,
    AnthropicSystemBlock,
    AnthropicTool,
    AnthropicToolChoice,
)
from chatbridge.domain.model import ModelRecord
from chatbridge.domain.ollama import OllamaChatRequest, OllamaMessage
from chatbridge.domain.openai import OpenAIChatResponse

__all__ = [
    "AnthropicMessage",
    "AnthropicMessagesRequest",
    "AnthropicSystemBlock",
    "AnthropicTool",
    "AnthropicToolChoice",
    "ModelRecord",
    "OllamaChatRequest",
    "OllamaMessage",
    "OpenAIChatResponse",
]
