"""Provider strategies for chat completions and embeddings.

A strategy translates the generic :class:`~llm_strategy.core.ChatOptions` /
:class:`~llm_strategy.core.EmbedOptions` requests into one provider's JSON
shape, posts it through a pre-configured
:class:`~llm_strategy.transport.HttpClient`, and returns a read-only response
view.  Use :func:`create_strategy` to build one from settings::

    strategy = create_strategy("openai", {"openai": {"api_key": "sk-..."}})
    reply = strategy.chat([{"role": "user", "content": "hi"}], ChatOptions(model="gpt-4"))
    reply.get_content()

When ``settings`` is omitted they are resolved by
:func:`llm_strategy.config.load_settings`.  Building a strategy never
performs network I/O.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Type

from .config import load_settings
from .core import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ConfigurationError,
    EmbedOptions,
    EmbedResponse,
    ParseError,
    StrategyError,
    TransportError,
)
from .strategies import OpenAIConfig, OpenAIStrategy, Strategy

__all__ = [
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "ConfigurationError",
    "EmbedOptions",
    "EmbedResponse",
    "OpenAIConfig",
    "OpenAIStrategy",
    "ParseError",
    "Strategy",
    "StrategyError",
    "TransportError",
    "create_strategy",
]


_STRATEGY_CLASSES: Dict[str, Type[Any]] = {
    "openai": OpenAIStrategy,
}


def create_strategy(
    name: str = "openai",
    settings: Optional[Mapping[str, Mapping[str, Any]]] = None,
    **kwargs: Any,
) -> Strategy:
    """Instantiate the strategy registered under ``name``.

    ``settings`` maps provider names to their settings; only the section for
    ``name`` is used.  Extra keyword arguments (for example an httpx
    ``transport``) are forwarded to the strategy constructor.
    """

    provider_name = name.lower()
    strategy_cls = _STRATEGY_CLASSES.get(provider_name)
    if strategy_cls is None:
        raise ConfigurationError(f"Unknown strategy '{name}'")
    resolved = load_settings() if settings is None else settings
    section = {str(key).lower(): value for key, value in resolved.items()}.get(provider_name) or {}
    return strategy_cls.from_settings(section, **kwargs)
