"""
Ollama Chat Domain Model

Inbound /api/chat request model.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class OllamaMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: str
    content: Optional[str] = ""
    images: Optional[list[str]] = None
    tool_calls: Optional[list[dict[str, Any]]] = None
    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None


class OllamaChatRequest(BaseModel):
    """Ollama native chat request"""

    model_config = ConfigDict(extra="allow")

    model: Optional[str] = Field(None, description="Requested model or alias")
    messages: Optional[list[OllamaMessage]] = Field(None, description="Conversation turns")
    # None means the configured default applies
    stream: Optional[bool] = None
    tools: Optional[list[dict[str, Any]]] = None
    format: Any = None
    options: Optional[dict[str, Any]] = None
    keep_alive: Any = None
