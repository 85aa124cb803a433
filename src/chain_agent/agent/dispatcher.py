"""Function-calling dispatch loop: prompt, model, tool, model, cache."""

from __future__ import annotations

import json
import logging
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage

from chain_agent.agent.model import ChatModel
from chain_agent.agent.registry import ToolRegistry, ToolResult
from chain_agent.cache.response_cache import ResponseCache
from chain_agent.errors import (
    DispatchError,
    InternalError,
    InvalidArgumentsError,
    InvalidPromptError,
)
from chain_agent.obs.tracing import Timer, TraceStore
from chain_agent.types import DispatchResult, ModelReply, ToolCallRequest, ToolTrace

logger = logging.getLogger(__name__)

EMPTY_ANSWER = "No response from AI."


class QueryDispatcher:
    """Runs one prompt through the cache, the model and at most one tool.

    States: cache check, first model call, then either a direct answer or
    argument parsing, tool execution and a second model call that turns the
    tool result into prose. The final answer is cached under the prompt.

    Tool failures do not abort the request: they come back as error
    `ToolResult`s and the second model call narrates them. Everything else
    (cache or model transport failures, unparsable arguments, unknown tool)
    ends the request with a `DispatchError`.
    """

    def __init__(
        self,
        *,
        model: ChatModel,
        tool_registry: ToolRegistry,
        cache: ResponseCache,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.model = model
        self.tool_registry = tool_registry
        self.cache = cache
        self.trace_store = trace_store if trace_store is not None else TraceStore()

    async def dispatch(self, prompt: str) -> DispatchResult:
        if not prompt:
            raise InvalidPromptError()

        try:
            return await self._run(prompt)
        except DispatchError as exc:
            logger.warning("Dispatch failed: %s", exc, exc_info=exc.__cause__ is not None)
            raise
        except Exception as exc:
            logger.exception("Unhandled error while answering prompt")
            raise InternalError() from exc

    async def _run(self, prompt: str) -> DispatchResult:
        observed_tools: list[ToolTrace] = []
        tool_name: str | None = None

        with Timer() as timer:
            cached = await self.cache.get(prompt)
            if cached is not None:
                logger.info("Serving from cache")
                answer = cached
            else:
                reply = await self.model.complete(
                    [HumanMessage(content=prompt)],
                    tools=self.tool_registry.openai_tools(),
                    tool_choice="auto",
                )
                if reply.tool_call is None:
                    answer = _final_text(reply)
                else:
                    tool_name = reply.tool_call.name
                    answer = await self._answer_with_tool(
                        prompt, reply, reply.tool_call, observed_tools
                    )
                await self.cache.put(prompt, answer)

        record = self.trace_store.create_record(
            prompt=prompt,
            answer=answer,
            cache_hit=cached is not None,
            tool_traces=observed_tools,
            latency_ms=timer.elapsed_ms,
        )
        return DispatchResult(
            message=answer,
            cache_hit=cached is not None,
            tool_name=tool_name,
            trace_id=record.trace_id,
        )

    async def _answer_with_tool(
        self,
        prompt: str,
        reply: ModelReply,
        tool_call: ToolCallRequest,
        observed_tools: list[ToolTrace],
    ) -> str:
        arguments = parse_arguments(tool_call.arguments_json)
        logger.info("Function called: %s with arguments: %s", tool_call.name, arguments)

        result = await self.tool_registry.invoke(
            tool_call.name, arguments, observer=observed_tools.append
        )
        logger.info("Function response: %s", result.model_dump_json(exclude_none=True))

        second = await self.model.complete(
            _follow_up_messages(prompt, reply, tool_call, arguments, result)
        )
        return _final_text(second)


def parse_arguments(arguments_json: str) -> dict[str, Any]:
    """Decode the model's argument payload; an empty payload means no arguments."""
    if not arguments_json or not arguments_json.strip():
        return {}
    try:
        arguments = json.loads(arguments_json)
    except json.JSONDecodeError as exc:
        logger.error("Error parsing function arguments: %s", exc)
        raise InvalidArgumentsError() from exc
    if not isinstance(arguments, dict):
        raise InvalidArgumentsError()
    return arguments


def _follow_up_messages(
    prompt: str,
    reply: ModelReply,
    tool_call: ToolCallRequest,
    arguments: dict[str, Any],
    result: ToolResult,
) -> list[BaseMessage]:
    return [
        HumanMessage(content=prompt),
        AIMessage(
            content=reply.content,
            tool_calls=[{"name": tool_call.name, "args": arguments, "id": tool_call.call_id}],
        ),
        ToolMessage(
            content=json.dumps(result.to_payload()),
            name=tool_call.name,
            tool_call_id=tool_call.call_id,
        ),
    ]


def _final_text(reply: ModelReply) -> str:
    return (reply.content or "").strip() or EMPTY_ANSWER
