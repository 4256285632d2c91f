"""OpenAI strategy."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import Field, ValidationError, field_validator, model_validator

from ..core import (
    ChatOptions,
    ConfigurationError,
    EmbedOptions,
    ImmutableModel,
    ParseError,
    TransportError,
    ensure_message,
)
from ..transport import DEFAULT_RETRIES, DEFAULT_TIMEOUT, HttpClient
from .base import MessageLike

_LOGGER = logging.getLogger(__name__)

DEFAULT_CHAT_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_EMBED_URL = "https://api.openai.com/v1/engines/text-similarity/embeddings"

_ModelT = TypeVar("_ModelT", bound=ImmutableModel)
_NumberT = TypeVar("_NumberT", int, float)


@dataclass(frozen=True)
class OpenAIConfig:
    """Connection settings for :class:`OpenAIStrategy`.

    Empty URLs are replaced with the public OpenAI endpoints when the
    strategy is built.
    """

    api_key: str
    chat_url: str = ""
    embed_url: str = ""
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES


class _Reply(ImmutableModel):
    """Reply fragment where a JSON ``null`` reads as an empty object."""

    @model_validator(mode="before")
    @classmethod
    def _null_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class _ChoiceMessage(_Reply):
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def _null_content_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class _Choice(_Reply):
    message: _ChoiceMessage = Field(default_factory=_ChoiceMessage)

    @field_validator("message", mode="before")
    @classmethod
    def _null_message_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class OpenAIChatResponse(_Reply):
    """Chat completion reply; only the message contents are kept."""

    choices: List[_Choice] = Field(default_factory=list)

    @field_validator("choices", mode="before")
    @classmethod
    def _null_choices_are_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def get_content(self) -> str:
        if self.choices:
            return self.choices[0].message.content
        return ""


class _EmbeddingData(_Reply):
    embedding: List[float] = Field(default_factory=list)

    @field_validator("embedding", mode="before")
    @classmethod
    def _null_embedding_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class OpenAIEmbedResponse(_Reply):
    """Embedding reply holding one vector per input text."""

    data: List[_EmbeddingData] = Field(default_factory=list)

    @field_validator("data", mode="before")
    @classmethod
    def _null_data_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def get_embeddings(self) -> List[List[float]]:
        return [list(item.embedding) for item in self.data]


class OpenAIStrategy:
    """Chat and embedding strategy for OpenAI-style HTTP endpoints.

    The strategy owns two :class:`~llm_strategy.transport.HttpClient`
    instances, one per endpoint, configured once at construction.  Nothing
    else is mutated after ``__init__``, so a single instance can serve
    concurrent callers.
    """

    name = "openai"

    def __init__(
        self,
        config: OpenAIConfig,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not config.api_key:
            raise ConfigurationError("OpenAI API key is required")
        self._config = replace(
            config,
            chat_url=config.chat_url or DEFAULT_CHAT_URL,
            embed_url=config.embed_url or DEFAULT_EMBED_URL,
        )
        self._chat_client = self._build_client(transport, async_transport)
        self._embed_client = self._build_client(transport, async_transport)

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], **kwargs: Any) -> "OpenAIStrategy":
        config = OpenAIConfig(
            api_key=str(settings.get("api_key") or ""),
            chat_url=str(settings.get("chat_url") or ""),
            embed_url=str(settings.get("embed_url") or ""),
            timeout=_setting(settings, "timeout", float, DEFAULT_TIMEOUT),
            retries=_setting(settings, "retries", int, DEFAULT_RETRIES),
        )
        return cls(config, **kwargs)

    @property
    def config(self) -> OpenAIConfig:
        return self._config

    def _build_client(
        self,
        transport: Optional[httpx.BaseTransport],
        async_transport: Optional[httpx.AsyncBaseTransport],
    ) -> HttpClient:
        return HttpClient(
            timeout=self._config.timeout,
            retries=self._config.retries,
            headers={
                "Authorization": f"Bearer {self._config.api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
            async_transport=async_transport,
        )

    # Payloads ---------------------------------------------------------
    @staticmethod
    def build_chat_payload(messages: Sequence[MessageLike], options: ChatOptions) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": options.model,
            "messages": [ensure_message(message).model_dump() for message in messages],
        }
        payload.update({k: v for k, v in {
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "top_p": options.top_p,
            "stop": options.stop,
        }.items() if v is not None})
        return payload

    @staticmethod
    def build_embed_payload(texts: Sequence[str], options: EmbedOptions) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": options.model,
            "input": {"texts": list(texts)},
        }
        if options.embedding_type:
            payload["params"] = {"text_type": options.embedding_type}
        return payload

    # Sync entrypoints -------------------------------------------------
    def chat(self, messages: Sequence[MessageLike], options: ChatOptions) -> OpenAIChatResponse:
        payload = self.build_chat_payload(messages, options)
        _LOGGER.debug("sending chat request to %s (model=%s, messages=%d)", self._config.chat_url, options.model, len(payload["messages"]))
        try:
            raw = self._chat_client.post(self._config.chat_url, payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"OpenAI chat request failed: {exc}") from exc
        return _parse(OpenAIChatResponse, raw, "chat")

    def embed(self, texts: Sequence[str], options: EmbedOptions) -> OpenAIEmbedResponse:
        payload = self.build_embed_payload(texts, options)
        _LOGGER.debug("sending embed request to %s (model=%s, texts=%d)", self._config.embed_url, options.model, len(texts))
        try:
            raw = self._embed_client.post(self._config.embed_url, payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"OpenAI embed request failed: {exc}") from exc
        return _parse(OpenAIEmbedResponse, raw, "embed")

    # Async entrypoints ------------------------------------------------
    async def achat(self, messages: Sequence[MessageLike], options: ChatOptions) -> OpenAIChatResponse:
        payload = self.build_chat_payload(messages, options)
        _LOGGER.debug("sending chat request to %s (model=%s, messages=%d)", self._config.chat_url, options.model, len(payload["messages"]))
        try:
            raw = await self._chat_client.apost(self._config.chat_url, payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"OpenAI chat request failed: {exc}") from exc
        return _parse(OpenAIChatResponse, raw, "chat")

    async def aembed(self, texts: Sequence[str], options: EmbedOptions) -> OpenAIEmbedResponse:
        payload = self.build_embed_payload(texts, options)
        _LOGGER.debug("sending embed request to %s (model=%s, texts=%d)", self._config.embed_url, options.model, len(texts))
        try:
            raw = await self._embed_client.apost(self._config.embed_url, payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"OpenAI embed request failed: {exc}") from exc
        return _parse(OpenAIEmbedResponse, raw, "embed")

    # Lifecycle --------------------------------------------------------
    def close(self) -> None:
        self._chat_client.close()
        self._embed_client.close()

    async def aclose(self) -> None:
        await self._chat_client.aclose()
        await self._embed_client.aclose()

    def __enter__(self) -> "OpenAIStrategy":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> "OpenAIStrategy":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _parse(model: Type[_ModelT], raw: bytes, operation: str) -> _ModelT:
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise ParseError(f"failed to unmarshal OpenAI {operation} response: {exc}") from exc


def _setting(settings: Mapping[str, Any], key: str, convert: Callable[[Any], _NumberT], default: _NumberT) -> _NumberT:
    value = settings.get(key)
    if value is None or value == "":
        return default
    try:
        return convert(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid OpenAI setting '{key}': {value!r}") from exc
