"""Prompt response cache and its storage backends."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from chain_agent.config import CacheConfig
from chain_agent.errors import UpstreamError

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Minimal key-value contract with per-entry expiry."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent or expired."""

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value that expires `ttl_seconds` after this call."""


@dataclass(slots=True)
class _Entry:
    value: str
    expires_at: float


class InMemoryCacheStore:
    """Process-local store used for tests and single-process deployments."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheStore:
    """Redis-backed store; expiry is delegated to `SETEX`."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisCacheStore:
        return cls(redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as exc:
            logger.error("Redis GET failed: %s", exc)
            raise UpstreamError() from exc

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.setex(key, ttl_seconds, value)
        except RedisError as exc:
            logger.error("Redis SETEX failed: %s", exc)
            raise UpstreamError() from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def aclose(self) -> None:
        await self._client.aclose()


class ResponseCache:
    """Maps a prompt, verbatim, to its final answer for a fixed TTL."""

    def __init__(self, store: CacheStore, config: CacheConfig | None = None) -> None:
        self.store = store
        self.config = config if config is not None else CacheConfig()

    @classmethod
    def create(cls, config: CacheConfig | None = None) -> ResponseCache:
        config = config if config is not None else CacheConfig()
        store: CacheStore
        if config.redis_url:
            store = RedisCacheStore.from_url(config.redis_url)
        else:
            store = InMemoryCacheStore()
        return cls(store, config)

    @property
    def backend(self) -> str:
        return "redis" if isinstance(self.store, RedisCacheStore) else "memory"

    def key_for(self, prompt: str) -> str:
        return f"{self.config.key_prefix}{prompt}"

    async def get(self, prompt: str) -> str | None:
        return await self.store.get(self.key_for(prompt))

    async def put(self, prompt: str, answer: str) -> None:
        await self.store.set(self.key_for(prompt), answer, self.config.ttl_seconds)

    async def healthy(self) -> bool:
        if isinstance(self.store, RedisCacheStore):
            return await self.store.ping()
        return True

    async def aclose(self) -> None:
        if isinstance(self.store, RedisCacheStore):
            await self.store.aclose()
