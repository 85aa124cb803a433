"""Error taxonomy shared by the dispatch loop, gateway and API."""

from __future__ import annotations


class DispatchError(Exception):
    """Terminal failure of a request, rendered to the caller as `{"error": ...}`.

    `public_message` is the only text the caller sees; the exception chain
    carries the internal detail for logs.
    """

    status_code = 500
    default_message = "Failed to generate AI response."

    def __init__(self, public_message: str | None = None) -> None:
        self.public_message = public_message or self.default_message
        super().__init__(self.public_message)


class InvalidPromptError(DispatchError):
    status_code = 400
    default_message = "Prompt is required."


class InvalidArgumentsError(DispatchError):
    default_message = "Invalid function arguments."


class UnknownToolError(DispatchError):
    def __init__(self, name: str) -> None:
        self.tool_name = name
        super().__init__(f"Function {name} not implemented.")


class UpstreamError(DispatchError):
    status_code = 502


class InternalError(DispatchError):
    pass


class GatewayError(Exception):
    """The explorer API failed or answered with a non-success status."""

    def __init__(self, message: str, *, status: str | None = None) -> None:
        self.status = status
        super().__init__(message)
