"""Chain Agent package."""

from .config import AppConfig
from .context import AgentContext, build_context

__all__ = ["AgentContext", "AppConfig", "build_context"]
