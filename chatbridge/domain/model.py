"""
Model Listing Domain Model

Metadata record for one upstream model, in the LM Studio /api/v0/models shape
the directory normalizes every backend listing into.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ModelRecord(BaseModel):
    """One model entry; missing metadata is filled with fixed defaults"""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Model id as the backend names it")
    object: str = Field("model", description="Object type")
    type: str = Field("llm", description="Model type")
    publisher: str = Field("lmstudio", description="Publisher")
    arch: str = Field("transformer", description="Architecture")
    compatibility_type: str = Field("gguf", description="Weights format")
    quantization: str = Field("unknown", description="Quantization")
    state: str = Field("not-loaded", description="Load state")
    max_context_length: int = Field(4096, description="Context window (tokens)")
    owned_by: Optional[str] = None
    created: Optional[int] = None
    size: int = 0
    digest: Optional[str] = None
