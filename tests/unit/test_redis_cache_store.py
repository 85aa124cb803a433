import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from chain_agent.cache.response_cache import RedisCacheStore, ResponseCache
from chain_agent.config import CacheConfig
from chain_agent.errors import UpstreamError
from conftest import ScriptedModel


class StubRedis:
    """Async client stand-in that records `SETEX` calls and serves `GET`."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.setex_calls: list[tuple[str, int, str]] = []
        self.closed = False

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.setex_calls.append((key, ttl, value))
        self.values[key] = value
        return True

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


class DownRedis(StubRedis):
    async def get(self, key: str) -> str | None:
        raise RedisConnectionError("Connection refused")

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        raise RedisConnectionError("Connection refused")

    async def ping(self) -> bool:
        raise RedisConnectionError("Connection refused")


@pytest.mark.asyncio
async def test_put_issues_setex_with_configured_ttl() -> None:
    client = StubRedis()
    cache = ResponseCache(RedisCacheStore(client), CacheConfig())

    await cache.put("What is Cronos?", "An EVM chain.")

    assert client.setex_calls == [("ai_response:What is Cronos?", 3600, "An EVM chain.")]
    assert await cache.get("What is Cronos?") == "An EVM chain."
    assert await cache.get("what is cronos?") is None
    assert cache.backend == "redis"


@pytest.mark.asyncio
async def test_custom_ttl_and_prefix_reach_redis() -> None:
    client = StubRedis()
    cache = ResponseCache(RedisCacheStore(client), CacheConfig(ttl_seconds=60, key_prefix="q:"))

    await cache.put("p", "v")

    assert client.setex_calls == [("q:p", 60, "v")]


@pytest.mark.asyncio
async def test_redis_errors_surface_as_upstream_errors() -> None:
    store = RedisCacheStore(DownRedis())

    with pytest.raises(UpstreamError) as read_error:
        await store.get("ai_response:p")
    with pytest.raises(UpstreamError) as write_error:
        await store.set("ai_response:p", "v", 3600)

    assert read_error.value.status_code == 502
    assert write_error.value.public_message == "Failed to generate AI response."


@pytest.mark.asyncio
async def test_health_reflects_redis_ping() -> None:
    healthy = ResponseCache(RedisCacheStore(StubRedis()), CacheConfig())
    down = ResponseCache(RedisCacheStore(DownRedis()), CacheConfig())

    assert await healthy.healthy() is True
    assert await down.healthy() is False


@pytest.mark.asyncio
async def test_close_releases_client() -> None:
    client = StubRedis()
    cache = ResponseCache(RedisCacheStore(client), CacheConfig())

    await cache.aclose()

    assert client.closed is True


@pytest.mark.asyncio
async def test_unreachable_redis_aborts_dispatch_before_model_call(make_context) -> None:
    model = ScriptedModel()
    cache = ResponseCache(RedisCacheStore(DownRedis()), CacheConfig())
    context = make_context(model, cache=cache)

    with pytest.raises(UpstreamError) as excinfo:
        await context.dispatcher.dispatch("What is Cronos?")

    assert excinfo.value.status_code == 502
    assert model.calls == []
