import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, cast

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pollinations_mcp.app.http.routers.health import router as health_router
from pollinations_mcp.app.http.routers.mcp import router as mcp_router
from pollinations_mcp.app.http.routers.sse import router as sse_router
from pollinations_mcp.core.config import load_settings
from pollinations_mcp.core.factory import load
from pollinations_mcp.core.interfaces import GenerationClient
from pollinations_mcp.core.logging import configure_logging, logger
from pollinations_mcp.core.tool_registry import ToolRegistry
from pollinations_mcp.core.types import FallbackMode
from pollinations_mcp.protocol.connections import ConnectionRegistry
from pollinations_mcp.protocol.delivery import DeliveryRouter
from pollinations_mcp.protocol.dispatcher import RpcDispatcher
from pollinations_mcp.protocol.service.relay_service import RelayService
from pollinations_mcp.protocol.sse import SseEmitter

ENDPOINTS = ["/", "/health", "/sse", "/mcp", "/api/test"]
KEEPALIVE_BOUNDS = (10.0, 30.0)


def _keepalive_interval(sse_cfg: Dict[str, Any]) -> float:
    requested = float(sse_cfg.get("keepalive_interval_sec", 10))
    low, high = KEEPALIVE_BOUNDS
    interval = min(max(requested, low), high)
    if interval != requested:
        logger.warning(f"sse.keepalive_interval_sec={requested} out of range, using {interval}")
    return interval


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_cfg = app.state.settings.get("app", {})
    logger.info(f"{app_cfg.get('name')} {app_cfg.get('version')} started ({app_cfg.get('environment')})")
    try:
        yield
    finally:
        closed = app.state.connections.close_all()
        logger.info(f"Shutting down gracefully, closed {closed} open stream(s)")


def create_app(
    settings: Optional[Dict[str, Any]] = None,
    client: Optional[GenerationClient] = None,
) -> FastAPI:
    """Create and configure the FastAPI application with DI"""
    settings = settings if settings is not None else load_settings()
    configure_logging(settings.get("logging", {}))

    app_cfg = settings.get("app", {})
    protocol_cfg = settings.get("protocol", {})
    sse_cfg = settings.get("sse", {})
    delivery_cfg = settings.get("delivery", {})

    # upstream generation client
    if client is None:
        upstream_cfg = settings.get("upstream", {})
        client = cast(GenerationClient, load(upstream_cfg.get("impl", ""), **upstream_cfg.get("args", {}) or {}))

    # tools registry; every tool is offered the upstream client
    tools_cfg = settings.get("tools", {})
    tools = ToolRegistry(tools_cfg.get("registry", []) or [], tools_cfg.get("enabled", []) or [], client=client)

    emitter = SseEmitter(
        handshake_event=sse_cfg.get("handshake_event", "system"),
        message_event=sse_cfg.get("message_event", "mcp"),
    )
    connections = ConnectionRegistry()
    dispatcher = RpcDispatcher(
        tools,
        server_name=app_cfg.get("name", "pollinations-mcp-server"),
        server_version=str(app_cfg.get("version", "1.0.0")),
        protocol_version=str(protocol_cfg.get("version", "2024-11-05")),
        strict_initialization=bool(protocol_cfg.get("strict_initialization", True)),
    )
    router = DeliveryRouter(
        connections,
        fallback=FallbackMode(delivery_cfg.get("fallback", "direct")),
        emitter=emitter,
        connection_header=sse_cfg.get("connection_header", "X-Connection-ID"),
    )
    relay = RelayService(
        dispatcher,
        router,
        connections,
        cancel_on_disconnect=bool(delivery_cfg.get("cancel_on_disconnect", True)),
    )

    app = FastAPI(
        title="Pollinations MCP Server",
        description="MCP relay exposing Pollinations image and text generation over SSE and HTTP",
        version=str(app_cfg.get("version", "1.0.0")),
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.client = client
    app.state.tools = tools
    app.state.connections = connections
    app.state.relay = relay
    app.state.emitter = emitter
    app.state.keepalive_interval = _keepalive_interval(sse_cfg)
    app.state.endpoints = ENDPOINTS
    app.state.connection_header = router.connection_header
    app.state.development = app_cfg.get("environment") == "development"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_headers=["*"],
        allow_methods=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Not found",
                    "message": f"Endpoint {request.method} {request.url.path} not found",
                    "availableEndpoints": ENDPOINTS,
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error [{request.method} {request.url.path}]: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if request.app.state.development else "Something went wrong",
            },
        )

    app.include_router(health_router)
    app.include_router(sse_router)
    app.include_router(mcp_router)
    return app
