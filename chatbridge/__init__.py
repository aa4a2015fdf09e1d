"""ChatBridge - Anthropic/Ollama to OpenAI-compatible chat proxy"""

__version__ = "0.1.0"
