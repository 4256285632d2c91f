"""Core data structures shared by every provider strategy.

The request side is modelled with frozen pydantic models.  Optional options
use ``None`` for "not set"; strategies only forward a field to the provider
when it is not ``None``, so ``temperature=0.0`` is sent while an omitted
temperature is left out of the payload entirely.

The response side is described by two small protocols, :class:`ChatResponse`
and :class:`EmbedResponse`, which concrete strategies satisfy with their own
provider-specific reply models.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, field_validator


class StrategyError(RuntimeError):
    """Base class for errors raised by provider strategies."""


class ConfigurationError(StrategyError):
    """Raised when a strategy cannot be constructed from its configuration."""


class TransportError(StrategyError):
    """Raised when the HTTP call failed after the transport gave up retrying."""


class ParseError(StrategyError):
    """Raised when a provider reply does not match the expected JSON shape."""


class ImmutableModel(BaseModel):
    """Base class that freezes models."""

    model_config = ConfigDict(frozen=True)


class ChatMessage(ImmutableModel):
    """Represents a single conversational turn, sent to the provider verbatim."""

    role: str
    content: str


class ChatOptions(ImmutableModel):
    """Options for a chat completion request."""

    model: str
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    stop: Optional[Union[str, List[str]]] = None

    @field_validator("model")
    @classmethod
    def _model_must_not_be_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("model must not be empty")
        return value


class EmbedOptions(ImmutableModel):
    """Options for an embedding request."""

    model: str
    embedding_type: Optional[str] = None

    @field_validator("model")
    @classmethod
    def _model_must_not_be_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("model must not be empty")
        return value


@runtime_checkable
class ChatResponse(Protocol):
    """Read-only view over a chat completion reply."""

    def get_content(self) -> str:
        ...


@runtime_checkable
class EmbedResponse(Protocol):
    """Read-only view over an embedding reply."""

    def get_embeddings(self) -> List[List[float]]:
        ...


def ensure_message(message: Union[ChatMessage, Dict[str, Any]]) -> ChatMessage:
    """Accept either a :class:`ChatMessage` or a ``{"role", "content"}`` mapping."""

    if isinstance(message, ChatMessage):
        return message
    return ChatMessage.model_validate(message)
