"""
Proxy API Module Initialization
"""

from chatbridge.api.proxy.anthropic import router as anthropic_router
from chatbridge.api.proxy.ollama import router as ollama_router
from chatbridge.api.proxy.openai import router as openai_router

__all__ = [
    "anthropic_router",
    "ollama_router",
    "openai_router",
]
