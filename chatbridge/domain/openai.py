"""
OpenAI Chat Completions Domain Model

Lenient models for upstream unary responses. Every field is optional so a
partially populated response still converts; only a missing choices list is
treated as unrecognisable. Integer metadata (created, index, token counts)
is coerced, and values that cannot be read as integers become None or 0.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _coerce_int(value: Any, default: Optional[int]) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return default
    if not isinstance(value, (int, float)):
        return default
    try:
        return int(value)
    except (ValueError, OverflowError):
        return default


class OpenAIFunctionCall(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    # JSON string in OpenAI dialect, sometimes an object from relaying backends
    arguments: Any = None


class OpenAIToolCall(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: Optional[str] = "function"
    function: OpenAIFunctionCall = Field(default_factory=OpenAIFunctionCall)


class OpenAIResponseMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Optional[str] = "assistant"
    content: Any = None
    tool_calls: Optional[list[OpenAIToolCall]] = None

    def text(self) -> str:
        """Message text; list-of-parts content is flattened"""
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, list):
            return "".join(
                part.get("text", "")
                for part in self.content
                if isinstance(part, dict) and part.get("type") in ("text", None)
            )
        return ""


class OpenAIChoice(BaseModel):
    model_config = ConfigDict(extra="allow")

    index: int = 0
    message: OpenAIResponseMessage = Field(default_factory=OpenAIResponseMessage)
    finish_reason: Optional[str] = None

    @field_validator("index", mode="before")
    @classmethod
    def _lenient_index(cls, value: Any) -> int:
        return _coerce_int(value, 0)

    @field_validator("finish_reason", mode="before")
    @classmethod
    def _lenient_finish_reason(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class OpenAIUsage(BaseModel):
    model_config = ConfigDict(extra="allow")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @field_validator("prompt_tokens", "completion_tokens", "total_tokens", mode="before")
    @classmethod
    def _lenient_count(cls, value: Any) -> int:
        return _coerce_int(value, 0)


class OpenAIChatResponse(BaseModel):
    """Non-streaming chat completion"""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: list[OpenAIChoice] = Field(default_factory=list)
    usage: Optional[OpenAIUsage] = None

    @field_validator("created", mode="before")
    @classmethod
    def _lenient_created(cls, value: Any) -> Optional[int]:
        return _coerce_int(value, None)

    @field_validator("usage", mode="before")
    @classmethod
    def _lenient_usage(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None
