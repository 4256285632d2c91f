"""Capability protocol implemented by provider strategies."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Protocol, Sequence, Union, runtime_checkable

from ..core import ChatMessage, ChatOptions, ChatResponse, EmbedOptions, EmbedResponse

MessageLike = Union[ChatMessage, Dict[str, Any]]


@runtime_checkable
class Strategy(Protocol):
    """Chat and embedding capability shared by every provider.

    Concrete strategies are plain classes that satisfy this protocol; the
    package-level :func:`llm_strategy.create_strategy` picks one by name.
    """

    name: str

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], **kwargs: Any) -> "Strategy":
        """Build the strategy from one provider section of the settings."""

    def chat(self, messages: Sequence[MessageLike], options: ChatOptions) -> ChatResponse:
        """Send a chat completion request and return its response view."""

    def embed(self, texts: Sequence[str], options: EmbedOptions) -> EmbedResponse:
        """Embed ``texts`` and return the response view."""

    async def achat(self, messages: Sequence[MessageLike], options: ChatOptions) -> ChatResponse:
        """Asynchronous companion for :meth:`chat`."""

    async def aembed(self, texts: Sequence[str], options: EmbedOptions) -> EmbedResponse:
        """Asynchronous companion for :meth:`embed`."""

    def close(self) -> None:
        """Release pooled connections held by the sync clients."""

    async def aclose(self) -> None:
        """Release pooled connections held by the async clients."""
