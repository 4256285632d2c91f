"""HTTP transport used by the provider strategies.

Strategies never talk to ``httpx`` directly.  Each one owns
:class:`HttpClient` instances that carry the default headers, the request
timeout and the retry policy, so the strategy code only has to build a JSON
body and read back raw bytes.  Failures surface as ``httpx.HTTPError``
subclasses once the configured attempts are exhausted; non-2xx responses are
raised as :class:`httpx.HTTPStatusError`.
"""
from __future__ import annotations

import asyncio
import logging
import math
import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, TypeVar

import httpx

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 3

_T = TypeVar("_T")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retrying transient failures."""

    attempts: int = DEFAULT_RETRIES
    backoff_factor: float = 2.0
    min_backoff: float = 0.5
    max_backoff: float = 10.0
    jitter: float = 0.1
    retriable: Tuple[type, ...] = (httpx.HTTPError,)


def _sleep(duration: float) -> None:
    time.sleep(duration)


async def _asleep(duration: float) -> None:
    await asyncio.sleep(duration)


def with_retry(config: RetryConfig) -> Callable[[Callable[..., _T]], Callable[..., _T]]:
    """Decorator applying retry/backoff to a synchronous function."""

    def decorator(func: Callable[..., _T]) -> Callable[..., _T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> _T:
            attempts = max(1, config.attempts)
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except config.retriable as error:  # type: ignore[misc]
                    if attempt == attempts:
                        raise
                    delay = _compute_backoff(config, attempt)
                    _LOGGER.debug("retrying %s in %.2fs (attempt %d/%d)", func.__name__, delay, attempt, attempts, exc_info=error)
                    _sleep(delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator


def with_retry_async(config: RetryConfig) -> Callable[[Callable[..., Awaitable[_T]]], Callable[..., Awaitable[_T]]]:
    """Decorator applying retry/backoff to an async function.

    ``asyncio.CancelledError`` is not an ``Exception`` subclass, so a
    cancelled call is never retried and propagates straight to the caller.
    """

    def decorator(func: Callable[..., Awaitable[_T]]) -> Callable[..., Awaitable[_T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> _T:
            attempts = max(1, config.attempts)
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except config.retriable as error:  # type: ignore[misc]
                    if attempt == attempts:
                        raise
                    delay = _compute_backoff(config, attempt)
                    _LOGGER.debug("retrying %s in %.2fs (attempt %d/%d)", func.__name__, delay, attempt, attempts, exc_info=error)
                    await _asleep(delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator


def _compute_backoff(config: RetryConfig, attempt: int) -> float:
    base_delay = config.min_backoff * math.pow(config.backoff_factor, attempt - 1)
    if config.jitter:
        base_delay += random.uniform(0, config.jitter)
    return min(base_delay, config.max_backoff)


class HttpClient:
    """Pooled JSON POST client with default headers, timeout and retries.

    One instance serves both the sync and async entrypoints.  The
    ``httpx.AsyncClient`` is only created by the first :meth:`apost`, so
    sync-only callers have nothing but the ``httpx.Client`` to close.  Headers
    are fixed at construction and both clients are safe to share between
    concurrent callers.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        retry: Optional[RetryConfig] = None,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._retry = retry or RetryConfig(attempts=retries)
        self._headers: Dict[str, str] = dict(headers or {})
        self._async_transport = async_transport
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._async_client: Optional[httpx.AsyncClient] = None

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def retry(self) -> RetryConfig:
        return self._retry

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def post(self, url: str, body: Any) -> bytes:
        """POST ``body`` as JSON and return the raw response bytes."""

        return with_retry(self._retry)(self._post_once)(url, body)

    async def apost(self, url: str, body: Any) -> bytes:
        """Asynchronous companion for :meth:`post`."""

        return await with_retry_async(self._retry)(self._apost_once)(url, body)

    def close(self) -> None:
        self._client.close()

    async def aclose(self) -> None:
        self._client.close()
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None

    def _post_once(self, url: str, body: Any) -> bytes:
        response = self._client.post(url, json=body, headers=self.headers)
        response.raise_for_status()
        return response.content

    async def _apost_once(self, url: str, body: Any) -> bytes:
        if self._async_client is None:
            self._async_client = httpx.AsyncClient(timeout=self._timeout, transport=self._async_transport)
        response = await self._async_client.post(url, json=body, headers=self.headers)
        response.raise_for_status()
        return response.content
