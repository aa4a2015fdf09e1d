"""
Anthropic Messages Domain Model

Typed boundary model for inbound /v1/messages requests. Content blocks are a
tagged union on "type"; unknown fields are kept so nothing the client sends
is silently reshaped.
"""

from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Literal


class _Block(BaseModel):
    model_config = ConfigDict(extra="allow")


class TextBlock(_Block):
    """Plain text content"""

    type: Literal["text"]
    text: str = ""
    cache_control: Optional[dict[str, Any]] = None


class ImageBlock(_Block):
    """Image content (base64 or url source)"""

    type: Literal["image"]
    source: dict[str, Any] = Field(default_factory=dict)


class ToolUseBlock(_Block):
    """Tool invocation emitted by the assistant"""

    type: Literal["tool_use"]
    id: str
    name: str
    input: Any = Field(default_factory=dict)


class ToolResultBlock(_Block):
    """Result of a tool invocation, sent back in a user turn"""

    type: Literal["tool_result"]
    tool_use_id: str
    content: Union[str, list[dict[str, Any]], None] = None
    is_error: Optional[bool] = None


class ThinkingBlock(_Block):
    type: Literal["thinking"]
    thinking: str = ""
    signature: Optional[str] = None


class RedactedThinkingBlock(_Block):
    type: Literal["redacted_thinking"]
    data: str = ""


ContentBlock = Annotated[
    Union[TextBlock, ImageBlock, ToolUseBlock, ToolResultBlock, ThinkingBlock, RedactedThinkingBlock],
    Field(discriminator="type"),
]


class AnthropicMessage(BaseModel):
    """One conversation turn"""

    model_config = ConfigDict(extra="allow")

    role: Literal["user", "assistant"]
    content: Union[str, list[ContentBlock]] = ""


class AnthropicSystemBlock(BaseModel):
    """System prompt block"""

    model_config = ConfigDict(extra="allow")

    type: Literal["text"] = "text"
    text: str = ""
    cache_control: Optional[dict[str, Any]] = None


class AnthropicTool(BaseModel):
    """Client tool definition"""

    model_config = ConfigDict(extra="allow")

    name: str
    description: Optional[str] = None
    input_schema: dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})


class AnthropicToolChoice(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["auto", "any", "tool", "none"] = "auto"
    name: Optional[str] = None


class AnthropicMessagesRequest(BaseModel):
    """
    Anthropic Messages API Request

    model and messages are optional here so a missing field surfaces as the
    proxy's own 400 rather than a schema error.
    """

    model_config = ConfigDict(extra="allow")

    model: Optional[str] = Field(None, description="Requested model or alias")
    messages: Optional[list[AnthropicMessage]] = Field(None, description="Conversation turns")
    system: Union[str, list[AnthropicSystemBlock], None] = Field(None, description="System prompt")
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    stop_sequences: Optional[list[str]] = None
    stream: Optional[bool] = False
    tools: Optional[list[AnthropicTool]] = None
    tool_choice: Optional[AnthropicToolChoice] = None
    metadata: Optional[dict[str, Any]] = None
