import json
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from pollinations_mcp.app.http.responses import delivery_response, internal_error_response, parse_error_response
from pollinations_mcp.core.logging import logger
from pollinations_mcp.protocol.schemas import request_id_of
from pollinations_mcp.protocol.sse import SSE_HEADERS
from pollinations_mcp.protocol.stream_session import StreamSession

router = APIRouter(tags=["sse"])


@router.get("/sse")
async def open_stream(request: Request):
    """Open a long-lived event stream; the first frame carries the connection id."""
    session = StreamSession(
        request.app.state.connections,
        request.is_disconnected,
        keepalive_interval=request.app.state.keepalive_interval,
        emitter=request.app.state.emitter,
    )
    logger.info(f"[{session.connection_id}] /sse opened from {request.client.host if request.client else 'unknown'}")
    return StreamingResponse(session.frames(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/sse")
async def post_message(request: Request):
    """Accept one JSON-RPC message; the answer goes to the stream named by the connection header."""
    header = request.app.state.connection_header
    connection_id: Optional[str] = request.headers.get(header) or None
    try:
        raw = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"[{connection_id or 'unknown'}] Unparseable POST /sse body: {e}")
        return parse_error_response()

    try:
        delivery = await request.app.state.relay.handle(raw, connection_id)
    except Exception as e:
        logger.exception(f"[{connection_id or 'unknown'}] POST /sse failed: {e}")
        return internal_error_response(request, "POST /sse", e, request_id_of(raw))
    return delivery_response(delivery)
