import pytest
from pydantic import BaseModel

from chain_agent.agent.registry import ToolRegistry, ToolResult, ToolSpec


class EchoInput(BaseModel):
    text: str


@pytest.mark.asyncio
async def test_tool_observer_captures_latency_and_payload() -> None:
    registry = ToolRegistry()

    async def _handler(data: EchoInput) -> ToolResult:
        return ToolResult.success("echo", data.text.upper(), {})

    registry.register(
        ToolSpec(
            name="echo",
            description="uppercase",
            args_schema=EchoInput,
            handler=_handler,
        )
    )

    observed = []
    result = await registry.invoke("echo", {"text": "hello"}, observer=observed.append)

    assert result.message == "HELLO"
    assert len(observed) == 1
    assert observed[0].name == "echo"
    assert observed[0].input_payload == {"text": "hello"}
    assert "HELLO" in observed[0].output_preview
    assert observed[0].latency_ms >= 0.0


@pytest.mark.asyncio
async def test_observer_is_scoped_to_one_call() -> None:
    registry = ToolRegistry()

    async def _handler(data: EchoInput) -> ToolResult:
        return ToolResult.success("echo", data.text, {})

    registry.register(
        ToolSpec(name="echo", description="echo", args_schema=EchoInput, handler=_handler)
    )

    observed = []
    await registry.invoke("echo", {"text": "a"}, observer=observed.append)
    await registry.invoke("echo", {"text": "b"})

    assert [trace.input_payload["text"] for trace in observed] == ["a"]
