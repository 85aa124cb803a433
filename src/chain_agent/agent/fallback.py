"""Deterministic fallback model when no external LLM is configured."""

from __future__ import annotations

import json
import re
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, ToolMessage

from chain_agent.types import ModelReply, ToolCallRequest

_ADDRESS_PATTERN = re.compile(r"\b0x[0-9a-fA-F]{40}\b")
_TX_HASH_PATTERN = re.compile(r"\b0x[0-9a-fA-F]{64}\b")
_AMOUNT_PATTERN = re.compile(r"\b(\d+(?:\.\d+)?)\s*([A-Za-z]{2,10})\b")


class KeywordChatModel:
    """Chat model that routes prompts to tools by keyword matching.

    It keeps the same contract as `LangChainChatModel` and is useful for
    local/offline environments where `OPENAI_API_KEY` is not configured. The
    first pass picks at most one tool from the offered catalog; the second
    pass narrates the tool result verbatim.
    """

    async def complete(
        self,
        messages: list[BaseMessage],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> ModelReply:
        del tool_choice  # routing is keyword based.
        tool_message = next(
            (message for message in messages if isinstance(message, ToolMessage)), None
        )
        if tool_message is not None:
            return ModelReply(finish_reason="stop", content=_narrate(str(tool_message.content)))

        prompt = next(
            (str(m.content) for m in messages if isinstance(m, HumanMessage)), ""
        )
        offered = {
            tool["function"]["name"] for tool in tools or [] if "function" in tool
        }
        selection = _route(prompt)
        if selection is None or selection[0] not in offered:
            return ModelReply(
                finish_reason="stop",
                content=(
                    "I can look up balances, blocks, transactions and contract ABIs, "
                    "or prepare a transaction for you to sign."
                ),
            )

        name, arguments = selection
        return ModelReply(
            finish_reason="tool_calls",
            tool_call=ToolCallRequest(name=name, arguments_json=json.dumps(arguments)),
        )


def _route(prompt: str) -> tuple[str, dict[str, Any]] | None:
    lowered = prompt.lower()
    addresses = _ADDRESS_PATTERN.findall(prompt)
    tx_hashes = _TX_HASH_PATTERN.findall(prompt)

    if tx_hashes and "status" in lowered:
        return "GetTransactionStatus", {"txHash": tx_hashes[0]}
    if tx_hashes:
        return "GetTransactionByHash", {"txHash": tx_hashes[0]}
    if "send" in lowered and addresses:
        amount = _AMOUNT_PATTERN.search(prompt)
        if amount is not None:
            return "SendTransaction", {
                "to": addresses[0],
                "amount": float(amount.group(1)),
                "symbol": amount.group(2).upper(),
            }
    if "abi" in lowered and addresses:
        return "GetContractABI", {"address": addresses[0]}
    if "balance" in lowered and addresses:
        return "GetBalance", {"walletAddresses": addresses}
    if "transactions" in lowered and addresses:
        return "GetTransactionsByAddress", {"address": addresses[0]}
    if "block" in lowered and ("latest" in lowered or "current" in lowered):
        return "GetLatestBlock", {}
    return None


def _narrate(raw_result: str) -> str:
    try:
        result = json.loads(raw_result)
    except json.JSONDecodeError:
        return raw_result

    if not isinstance(result, dict):
        return raw_result
    if result.get("error"):
        detail = f" ({result['detail']})" if result.get("detail") else ""
        return f"Sorry, I could not complete that request: {result['error']}{detail}"

    data = result.get("data") or {}
    if "magicLink" in data:
        return f"{result.get('message', '')} {data['magicLink']}".strip()
    if "timestamp" in data:
        return f"{result.get('message', '')} (mined at {data['timestamp']})."
    return str(result.get("message") or "Done.")
