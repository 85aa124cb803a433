"""Configuration models for the chain agent."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class GatewayConfig(BaseModel):
    """Configures the blockchain explorer API."""

    base_url: str = "https://cronos.org/explorer/api"
    api_key: str | None = None


class CacheConfig(BaseModel):
    """Configures the prompt response cache."""

    redis_url: str | None = None
    ttl_seconds: int = Field(default=3600, ge=1)
    key_prefix: str = "ai_response:"


class ModelConfig(BaseModel):
    """Configures the chat model provider."""

    api_key: str | None = None
    model_name: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)


class MagicLinkConfig(BaseModel):
    """Configures the URLs embedded in signing links."""

    frontend_url: str = "http://localhost:5173"
    public_base_url: str = "http://localhost:5000"
    execute_action_url: str = "http://localhost:3000/execute-action"


class ApiConfig(BaseModel):
    """Configures the HTTP surface."""

    api_keys: list[str] = Field(default_factory=list)
    log_level: str = "INFO"


class AppConfig(BaseModel):
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    links: MagicLinkConfig = Field(default_factory=MagicLinkConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Build settings from the process environment (and a `.env` file)."""
        load_dotenv()

        gateway = GatewayConfig(
            base_url=os.getenv("CRONOS_API_URL") or GatewayConfig().base_url,
            api_key=os.getenv("CRONOS_API_KEY") or None,
        )
        cache = CacheConfig(
            redis_url=os.getenv("REDIS_URL") or None,
            ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "3600")),
        )
        model = ModelConfig(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            model_name=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.7")),
        )
        links = MagicLinkConfig(
            frontend_url=os.getenv("FRONTEND_URL", MagicLinkConfig().frontend_url),
            public_base_url=os.getenv("PUBLIC_BASE_URL", MagicLinkConfig().public_base_url),
            execute_action_url=os.getenv(
                "EXECUTE_ACTION_URL", MagicLinkConfig().execute_action_url
            ),
        )
        api = ApiConfig(
            api_keys=[
                key.strip()
                for key in os.getenv("API_KEYS", "").split(",")
                if key.strip()
            ],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
        return cls(gateway=gateway, cache=cache, model=model, links=links, api=api)
