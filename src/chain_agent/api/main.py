"""FastAPI entrypoint for query, blockchain, magic-link and trace endpoints."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import BaseModel, Field

from chain_agent.config import AppConfig
from chain_agent.context import AgentContext, build_context
from chain_agent.errors import DispatchError, GatewayError

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=_LOG_FORMAT)


class QueryRequest(BaseModel):
    prompt: str = ""


class MagicLinkRequest(BaseModel):
    action: str = ""
    user_id: str = Field(default="", alias="userId")


def get_context(request: Request) -> AgentContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("AgentContext not initialized. Check lifespan setup.")
    return context


ContextDep = Annotated[AgentContext, Depends(get_context)]


def require_api_key(
    context: ContextDep,
    x_api_key: Annotated[str | None, Header()] = None,
) -> None:
    """Reject callers without a configured key; open when no keys are configured."""
    allowed = context.config.api.api_keys
    if allowed and x_api_key not in allowed:
        raise HTTPException(status_code=401, detail="Unauthorized.")


def create_app(
    context: AgentContext | None = None,
    config: AppConfig | None = None,
) -> FastAPI:
    """Build the application.

    A prebuilt `context` is used as-is (tests pass stubs this way);
    otherwise one is wired from `config` or the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context
        if ctx is None:
            ctx = build_context(config if config is not None else AppConfig.from_env())
        configure_logging(ctx.config.api.log_level)
        app.state.context = ctx
        logger.info(
            "Chain agent started (model=%s, cache=%s, tools=%d)",
            ctx.model_mode,
            ctx.cache.backend,
            len(ctx.tool_registry.names()),
        )
        yield
        await ctx.aclose()
        del app.state.context
        logger.info("Chain agent shut down")

    app = FastAPI(title="Chain Agent", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DispatchError)
    async def _dispatch_error(request: Request, exc: DispatchError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected request body: %s", exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid request body."})


def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    async def health(context: ContextDep) -> dict[str, Any]:
        return {
            "status": "ok",
            "model_mode": context.model_mode,
            "cache_backend": context.cache.backend,
            "cache_healthy": await context.cache.healthy(),
            "trace_count": len(context.trace_store),
        }

    @app.get("/tools")
    async def tools(context: ContextDep) -> dict[str, Any]:
        return {
            "items": [
                descriptor.model_dump()
                for descriptor in context.tool_registry.descriptors()
            ]
        }

    @app.post("/query", dependencies=[Depends(require_api_key)])
    async def query(request: QueryRequest, context: ContextDep) -> dict[str, Any]:
        result = await context.dispatcher.dispatch(request.prompt)
        return {"message": result.message}

    @app.get("/blockchain/balance/{address}")
    async def balance(address: str, context: ContextDep) -> dict[str, Any]:
        balances = await _read(context.gateway.get_balances([address]))
        return {"balance": balances[0]["balanceEth"] if balances else "0.0"}

    @app.get("/blockchain/latest-block")
    async def latest_block(context: ContextDep) -> dict[str, Any]:
        return await _read(context.gateway.get_latest_block())

    @app.get("/blockchain/transactions/{address}")
    async def transactions(address: str, context: ContextDep, limit: int = 5) -> dict[str, Any]:
        items = await _read(context.gateway.get_transactions(address, limit=max(limit, 1)))
        return {"transactions": items}

    @app.get("/blockchain/contract-abi/{address}")
    async def contract_abi(address: str, context: ContextDep) -> dict[str, Any]:
        return {"abi": await _read(context.gateway.get_contract_abi(address))}

    @app.post("/magic-link/generate")
    async def generate_magic_link(request: MagicLinkRequest, context: ContextDep) -> dict[str, Any]:
        if not request.action or not request.user_id:
            raise HTTPException(status_code=400, detail="Action and userId are required.")
        link = context.magic_links.generate(request.action, request.user_id)
        return {"magicLink": link.url}

    @app.get("/magic-link/execute/{token}")
    async def execute_magic_link(token: str, context: ContextDep) -> RedirectResponse:
        if context.magic_links.lookup(token) is None:
            raise HTTPException(status_code=400, detail="Invalid or expired Magic Link.")
        return RedirectResponse(context.magic_links.execute_redirect_url(token), status_code=302)

    @app.get("/magic-link/{link_id}")
    async def magic_link_detail(link_id: str, token: str, context: ContextDep) -> dict[str, Any]:
        link = context.magic_links.resolve(link_id, token)
        if link is None:
            raise HTTPException(status_code=404, detail="Magic Link not found.")
        return {
            "id": link.link_id,
            "action": link.action,
            "payload": link.payload,
            "createdAt": link.created_at,
        }

    @app.get("/traces")
    async def traces(context: ContextDep, limit: int = 20) -> dict[str, Any]:
        records = [asdict(record) for record in context.trace_store.list_recent(limit=limit)]
        return {"items": records}

    @app.get("/traces/{trace_id}")
    async def trace_detail(trace_id: str, context: ContextDep) -> dict[str, Any]:
        try:
            record = context.trace_store.get(trace_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return asdict(record)

    @app.get("/metrics")
    async def metrics(context: ContextDep) -> dict[str, Any]:
        return context.trace_store.summary()


async def _read(awaitable: Any) -> Any:
    try:
        return await awaitable
    except GatewayError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


app = create_app()
