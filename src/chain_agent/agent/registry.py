"""Tool registry built on Pydantic v2 models."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from time import perf_counter
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from chain_agent.errors import UnknownToolError
from chain_agent.types import ToolTrace

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Payload handed back to the model as the function result."""

    status: Literal["Success", "Error"] = "Success"
    action: str
    message: str = ""
    data: dict[str, Any] | None = None
    error: str | None = None
    detail: str | None = None

    @classmethod
    def success(cls, action: str, message: str, data: dict[str, Any]) -> ToolResult:
        return cls(status="Success", action=action, message=message, data=data)

    @classmethod
    def failure(cls, action: str, error: str, detail: str | None = None) -> ToolResult:
        return cls(status="Error", action=action, message=error, error=error, detail=detail)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ToolDescriptor(BaseModel):
    """Schema of a tool as offered to the model."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: dict[str, dict[str, Any]]
    required: tuple[str, ...] = ()

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": self.parameters,
                    "required": list(self.required),
                },
            },
        }


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: Callable[[Any], Awaitable[ToolResult]]
    failure_message: str = "Tool execution failed."

    def descriptor(self) -> ToolDescriptor:
        schema = self.args_schema.model_json_schema(by_alias=True)
        properties = {
            name: {key: value for key, value in prop.items() if key not in ("title", "default")}
            for name, prop in schema.get("properties", {}).items()
        }
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameters=properties,
            required=tuple(schema.get("required", [])),
        )

    async def invoke(self, payload: dict[str, Any]) -> ToolResult:
        """Validate `payload` and run the handler; never raises."""
        try:
            data = self.args_schema.model_validate(payload)
            return await self.handler(data)
        except ValidationError as exc:
            logger.warning("Invalid arguments for %s: %s", self.name, exc)
            return ToolResult.failure(self.name, self.failure_message, _summarize(exc))
        except Exception as exc:
            logger.error("Error in %s: %s", self.name, exc)
            return ToolResult.failure(self.name, self.failure_message, str(exc))


class ToolRegistry:
    """Stores tool specs and exposes their descriptors to the model."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    async def invoke(
        self,
        name: str,
        payload: dict[str, Any],
        *,
        observer: Callable[[ToolTrace], None] | None = None,
    ) -> ToolResult:
        """Run the named tool.

        `observer`, when given, receives the `ToolTrace` of this call only.
        Raises `UnknownToolError` when nothing is registered under `name`.
        """
        spec = self._tools.get(name)
        if spec is None:
            raise UnknownToolError(name)

        start = perf_counter()
        result = await spec.invoke(payload)
        latency_ms = (perf_counter() - start) * 1000.0

        if observer is not None:
            observer(
                ToolTrace(
                    name=spec.name,
                    input_payload=payload,
                    output_preview=result.model_dump_json(exclude_none=True)[:320],
                    latency_ms=latency_ms,
                )
            )
        return result

    def descriptors(self) -> list[ToolDescriptor]:
        return [spec.descriptor() for spec in self._tools.values()]

    def openai_tools(self) -> list[dict[str, Any]]:
        return [descriptor.to_openai_tool() for descriptor in self.descriptors()]

    def names(self) -> list[str]:
        return list(self._tools)


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "arguments"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)
