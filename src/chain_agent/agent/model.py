"""Chat model contract and the LangChain-backed implementation."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Protocol

from langchain_core.messages import AIMessage, BaseMessage

from chain_agent.config import ModelConfig
from chain_agent.errors import UpstreamError
from chain_agent.types import ModelReply, ToolCallRequest

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)


class ChatModel(Protocol):
    """One request/response round trip against a chat model."""

    async def complete(
        self,
        messages: list[BaseMessage],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> ModelReply:
        """Return the model's text answer or its single tool selection."""


class LangChainChatModel:
    """Adapts a LangChain chat model to the `ChatModel` contract."""

    def __init__(self, llm: BaseChatModel) -> None:
        self.llm = llm

    @classmethod
    def from_config(cls, config: ModelConfig) -> LangChainChatModel:
        from langchain_openai import ChatOpenAI

        return cls(
            ChatOpenAI(
                model=config.model_name,
                temperature=config.temperature,
                api_key=config.api_key,
            )
        )

    async def complete(
        self,
        messages: list[BaseMessage],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> ModelReply:
        runnable: Any = self.llm
        if tools:
            runnable = runnable.bind_tools(
                tools,
                tool_choice=tool_choice or "auto",
                parallel_tool_calls=False,
            )

        try:
            response = await runnable.ainvoke(messages)
        except Exception as exc:
            logger.error("Model provider error: %s", exc)
            raise UpstreamError(_provider_message(exc)) from exc

        return _to_reply(response)


def _to_reply(response: AIMessage) -> ModelReply:
    content = response.content
    if isinstance(content, list):
        content = "".join(
            str(part.get("text", "")) if isinstance(part, dict) else str(part)
            for part in content
        )
    finish_reason = str(
        (response.response_metadata or {}).get("finish_reason", "stop")
    )
    tool_call = _first_tool_call(response)
    if tool_call is not None:
        finish_reason = "tool_calls"
    return ModelReply(finish_reason=finish_reason, content=str(content), tool_call=tool_call)


def _first_tool_call(response: AIMessage) -> ToolCallRequest | None:
    """Extract the first tool call with its arguments as the raw JSON string.

    The raw provider payload is preferred so that malformed arguments reach
    the dispatcher unchanged instead of being silently parsed or dropped.
    """
    raw_calls = (response.additional_kwargs or {}).get("tool_calls") or []
    if raw_calls:
        first = raw_calls[0]
        function = first.get("function") or {}
        return ToolCallRequest(
            name=str(function.get("name", "")),
            arguments_json=function.get("arguments") or "",
            call_id=str(first.get("id") or "call_0"),
        )

    if response.invalid_tool_calls:
        invalid = response.invalid_tool_calls[0]
        return ToolCallRequest(
            name=str(invalid.get("name") or ""),
            arguments_json=invalid.get("args") or "",
            call_id=str(invalid.get("id") or "call_0"),
        )

    if response.tool_calls:
        parsed = response.tool_calls[0]
        return ToolCallRequest(
            name=parsed["name"],
            arguments_json=json.dumps(parsed.get("args") or {}),
            call_id=str(parsed.get("id") or "call_0"),
        )
    return None


def _provider_message(exc: Exception) -> str | None:
    """Return the provider's explicit error message, if it sent one."""
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return None
