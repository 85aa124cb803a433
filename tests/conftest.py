from __future__ import annotations

from typing import Any

import httpx
import pytest

from chain_agent.cache.response_cache import InMemoryCacheStore, ResponseCache
from chain_agent.config import AppConfig, GatewayConfig
from chain_agent.context import AgentContext, build_context
from chain_agent.gateway.explorer import ExplorerGateway
from chain_agent.types import ModelReply


class ScriptedModel:
    """Chat model stub that replays canned replies and records every call."""

    def __init__(self, *replies: ModelReply) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        messages: list[Any],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> ModelReply:
        self.calls.append(
            {"messages": list(messages), "tools": tools, "tool_choice": tool_choice}
        )
        if not self.replies:
            raise AssertionError("unexpected model call")
        return self.replies.pop(0)


class QueuedExplorer:
    """Serves queued explorer payloads through `httpx.MockTransport`."""

    def __init__(self, *payloads: Any) -> None:
        self.payloads = list(payloads)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.payloads:
            return httpx.Response(200, json={"status": "0", "message": "No data queued"})
        payload = self.payloads.pop(0)
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(200, json=payload)

    def gateway(self) -> ExplorerGateway:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return ExplorerGateway(
            client,
            GatewayConfig(base_url="https://explorer.test/api", api_key="test-key"),
        )

    def params(self, index: int) -> dict[str, str]:
        return dict(self.requests[index].url.params)


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_context(clock: FakeClock):
    def _make(
        model: Any,
        explorer: QueuedExplorer | None = None,
        config: AppConfig | None = None,
        cache: ResponseCache | None = None,
    ) -> AgentContext:
        config = config if config is not None else AppConfig()
        explorer = explorer if explorer is not None else QueuedExplorer()
        if cache is None:
            cache = ResponseCache(InMemoryCacheStore(clock=clock), config.cache)
        return build_context(config, gateway=explorer.gateway(), cache=cache, model=model)

    return _make
