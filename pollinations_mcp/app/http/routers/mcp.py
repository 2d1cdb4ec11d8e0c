import json

from fastapi import APIRouter, Request

from pollinations_mcp.app.http.responses import delivery_response, internal_error_response, parse_error_response
from pollinations_mcp.core.logging import logger
from pollinations_mcp.core.types import FallbackMode
from pollinations_mcp.protocol.schemas import request_id_of

router = APIRouter(tags=["mcp"])


@router.post("/mcp")
async def direct_message(request: Request):
    """Stateless JSON-RPC: the response is always the HTTP body."""
    try:
        raw = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"[direct] Unparseable POST /mcp body: {e}")
        return parse_error_response()

    try:
        delivery = await request.app.state.relay.handle(raw, None, fallback=FallbackMode.DIRECT)
    except Exception as e:
        logger.exception(f"[direct] POST /mcp failed: {e}")
        return internal_error_response(request, "POST /mcp", e, request_id_of(raw))
    return delivery_response(delivery)
