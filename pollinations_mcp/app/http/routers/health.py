import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/")
def service_info(request: Request):
    app_cfg = request.app.state.settings.get("app", {})
    return {
        "name": app_cfg.get("name", "pollinations-mcp-server"),
        "version": str(app_cfg.get("version", "1.0.0")),
        "description": "MCP server for Pollinations image and text generation",
        "endpoints": request.app.state.endpoints,
        "tools": request.app.state.tools.names(),
    }


@router.get("/health")
def health(request: Request):
    state = request.app.state
    app_cfg = state.settings.get("app", {})
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "port": app_cfg.get("api", {}).get("port"),
        "uptime": round(time.monotonic() - state.started_at, 3),
        "activeConnections": state.connections.count(),
        "version": str(app_cfg.get("version", "1.0.0")),
    }


@router.get("/api/test")
def self_test(request: Request):
    """Quick wiring check for manual probing."""
    state = request.app.state
    return {
        "status": "ok",
        "endpoints": request.app.state.endpoints,
        "tools": state.tools.names(),
        "activeConnections": state.connections.count(),
        "initializedConnections": state.connections.initialized_count(),
    }
