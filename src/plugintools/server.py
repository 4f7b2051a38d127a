"""
HTTP boundary for plugintools.

Routes map one-to-one onto the registry/dispatch contract:

    GET  /api/v1/health              Liveness and tool count
    GET  /api/v1/tools               Descriptors of every registered tool
    GET  /api/v1/tools/{id}          One descriptor (?params=true: its schema)
    POST /api/v1/tools/{id}          Dispatch the JSON object body to the tool

Failures are returned as {"detail": <error.to_dict()>} with a status code
chosen from the error kind. Tool invocations run on the thread pool, one
worker per request; the core never runs on the event loop.
"""

import json
import logging
import secrets
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from plugintools import __version__
from plugintools.errors import PluginToolsError, ToolNotFoundError
from plugintools.schema import Config, ServerConfig
from plugintools.tools import ToolContext, ToolRegistry, build_registry, close_tools, dispatch

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

STATUS_BY_KIND = {
    "validation": 400,
    "capacity": 400,
    "not_found": 404,
    "permission": 403,
    "timeout": 500,
    "execution": 500,
}


def status_for(error: PluginToolsError) -> int:
    """HTTP status code for a typed failure."""
    return STATUS_BY_KIND.get(error.kind, 500)


def _error_response(error: PluginToolsError) -> HTTPException:
    return HTTPException(status_code=status_for(error), detail=error.to_dict())


def _lookup(request: Request, tool_id: str):
    registry: ToolRegistry = request.app.state.registry
    try:
        return registry.get(tool_id)
    except ToolNotFoundError as e:
        raise _error_response(e) from e


def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None),
) -> None:
    """Reject the request unless auth is off or X-API-Key is a known key."""
    config: Config = request.app.state.config
    if not config.security.enable_auth:
        return

    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key is required")

    for key in config.security.api_keys:
        if secrets.compare_digest(x_api_key.encode(), key.encode()):
            return
    raise HTTPException(status_code=401, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])


@router.get("/tools")
def list_tools(request: Request) -> list[dict[str, Any]]:
    """Descriptors of all registered tools."""
    registry: ToolRegistry = request.app.state.registry
    return [descriptor.model_dump() for descriptor in registry.descriptors()]


@router.get("/tools/{tool_id}")
def get_tool(request: Request, tool_id: str, params: bool = False) -> Any:
    """One tool's descriptor, or its parameter schema with ?params=true."""
    tool = _lookup(request, tool_id)
    if params:
        return [spec.model_dump(mode="json") for spec in tool.parameters]
    return tool.descriptor.model_dump()


@router.post("/tools/{tool_id}")
async def execute_tool(request: Request, tool_id: str) -> Any:
    """Dispatch the JSON object body to a tool and return its data."""
    tool = _lookup(request, tool_id)

    raw = await request.body()
    try:
        params = json.loads(raw) if raw.strip() else {}
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid request body") from None
    if not isinstance(params, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    context = ToolContext(request_id=request.state.request_id)
    output = await run_in_threadpool(dispatch, tool, params, context)

    if not output.success:
        if output.failure is not None:
            raise _error_response(output.failure)
        raise HTTPException(status_code=500, detail=output.error)
    return output.data


def create_app(config: Config, registry: ToolRegistry | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Loaded configuration (read-only)
        registry: Registry to serve; built from config when omitted

    Returns:
        The application; tools are closed on shutdown
    """
    registry = registry if registry is not None else build_registry(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Serving %d tools", len(registry))
        yield
        logger.info("Shutting down, closing tools")
        close_tools(registry)

    app = FastAPI(
        title="plugintools",
        description="Discover and invoke registered tools",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.registry = registry

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request.state.request_id = uuid.uuid4().hex[:12]
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        client = request.client.host if request.client else "-"
        logger.info(
            "[%s] %s %s %s %d %.1fms",
            request.state.request_id,
            request.method,
            request.url.path,
            client,
            response.status_code,
            elapsed_ms,
        )
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    @app.get(f"{API_PREFIX}/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "version": __version__, "tools": len(registry)}

    app.include_router(router, prefix=API_PREFIX, tags=["tools"])
    return app


def uvicorn_options(server: ServerConfig) -> dict[str, Any]:
    """Map ServerConfig onto uvicorn.run keyword arguments."""
    return {
        "host": server.host,
        "port": server.port,
        "timeout_keep_alive": server.keep_alive_timeout,
        "timeout_graceful_shutdown": server.shutdown_timeout,
        # Records go through the root RichHandler
        "log_config": None,
    }


def serve(config: Config, registry: ToolRegistry | None = None) -> None:
    """Run the HTTP server with uvicorn until interrupted."""
    import uvicorn

    app = create_app(config, registry)
    uvicorn.run(app, **uvicorn_options(config.server))
