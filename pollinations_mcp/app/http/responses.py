from typing import Any, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from pollinations_mcp.core.errors import InternalError, ParseError
from pollinations_mcp.protocol.delivery import Delivery
from pollinations_mcp.protocol.schemas import error_response


def delivery_response(delivery: Delivery) -> Response:
    if delivery.body is None:
        return Response(status_code=delivery.status_code)
    return JSONResponse(status_code=delivery.status_code, content=delivery.body)


def parse_error_response() -> JSONResponse:
    return JSONResponse(status_code=400, content=error_response(None, ParseError()))


def internal_error_response(request: Request, where: str, exc: Exception, request_id: Optional[Any] = None) -> JSONResponse:
    """JSON-RPC shaped 500; exception text is only exposed in development."""
    error = InternalError(
        str(exc) if request.app.state.development else None,
        message=f"Internal server error during {where} processing.",
    )
    return JSONResponse(status_code=500, content=error_response(request_id, error))
