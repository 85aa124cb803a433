"""Explicitly constructed store handles shared by the API and the dispatcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from chain_agent.agent.dispatcher import QueryDispatcher
from chain_agent.agent.fallback import KeywordChatModel
from chain_agent.agent.magic_links import MagicLinkStore
from chain_agent.agent.model import ChatModel, LangChainChatModel
from chain_agent.agent.registry import ToolRegistry
from chain_agent.agent.tools import register_chain_tools
from chain_agent.cache.response_cache import ResponseCache
from chain_agent.config import AppConfig
from chain_agent.gateway.explorer import ExplorerGateway
from chain_agent.obs.tracing import TraceStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AgentContext:
    config: AppConfig
    gateway: ExplorerGateway
    cache: ResponseCache
    magic_links: MagicLinkStore
    tool_registry: ToolRegistry
    trace_store: TraceStore
    model: ChatModel
    dispatcher: QueryDispatcher

    @property
    def model_mode(self) -> str:
        return "langchain" if isinstance(self.model, LangChainChatModel) else "deterministic"

    async def aclose(self) -> None:
        await self.gateway.aclose()
        await self.cache.aclose()


def build_context(
    config: AppConfig,
    *,
    gateway: ExplorerGateway | None = None,
    cache: ResponseCache | None = None,
    model: ChatModel | None = None,
) -> AgentContext:
    """Wire every collaborator once; callers may override any of them."""
    if gateway is None:
        gateway = ExplorerGateway.create(config.gateway)
    if cache is None:
        cache = ResponseCache.create(config.cache)
    if model is None:
        if config.model.api_key:
            model = LangChainChatModel.from_config(config.model)
        else:
            logger.warning("OPENAI_API_KEY is not set; using the keyword fallback model")
            model = KeywordChatModel()

    magic_links = MagicLinkStore(config.links)
    registry = ToolRegistry()
    register_chain_tools(registry, gateway, magic_links)
    trace_store = TraceStore()
    dispatcher = QueryDispatcher(
        model=model,
        tool_registry=registry,
        cache=cache,
        trace_store=trace_store,
    )
    return AgentContext(
        config=config,
        gateway=gateway,
        cache=cache,
        magic_links=magic_links,
        tool_registry=registry,
        trace_store=trace_store,
        model=model,
        dispatcher=dispatcher,
    )
