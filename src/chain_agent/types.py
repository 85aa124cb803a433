"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class ToolCallRequest:
    """A tool selection made by the model, arguments still JSON-encoded."""

    name: str
    arguments_json: str
    call_id: str = "call_0"


@dataclass(slots=True)
class ModelReply:
    """Normalized reply from one chat model round trip."""

    finish_reason: str
    content: str = ""
    tool_call: ToolCallRequest | None = None


@dataclass(slots=True)
class DispatchResult:
    """Outcome of one prompt passing through the dispatch loop."""

    message: str
    cache_hit: bool
    tool_name: str | None = None
    trace_id: str | None = None


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
