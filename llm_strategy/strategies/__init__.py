"""Strategy exports for llm_strategy."""
from .base import Strategy
from .openai import OpenAIChatResponse, OpenAIConfig, OpenAIEmbedResponse, OpenAIStrategy

__all__ = [
    "OpenAIChatResponse",
    "OpenAIConfig",
    "OpenAIEmbedResponse",
    "OpenAIStrategy",
    "Strategy",
]
