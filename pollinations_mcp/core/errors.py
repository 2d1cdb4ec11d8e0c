"""Exception hierarchy shared by the dispatcher, tools, upstream client and router."""
from typing import Any, Dict, Optional

from pollinations_mcp.core.types import RpcErrorCode


class RelayError(Exception):
    """Base class for every error raised by the relay."""


class RpcError(RelayError):
    """An error that maps onto a JSON-RPC error object."""

    code: int = RpcErrorCode.INTERNAL_ERROR
    message: str = "Internal error"

    def __init__(self, data: Optional[Any] = None, *, message: Optional[str] = None):
        super().__init__(data if data is not None else (message or self.message))
        self.data = data
        if message:
            self.message = message

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class ParseError(RpcError):
    code = RpcErrorCode.PARSE_ERROR
    message = "Parse error"


class InvalidRequest(RpcError):
    code = RpcErrorCode.INVALID_REQUEST
    message = "Invalid Request"


class MethodNotFound(RpcError):
    code = RpcErrorCode.METHOD_NOT_FOUND
    message = "Method not found"


class ToolNotFound(MethodNotFound):
    message = "Tool not found"


class InternalError(RpcError):
    code = RpcErrorCode.INTERNAL_ERROR
    message = "Internal error"


class NotInitialized(InternalError):
    pass


class ToolArgumentError(InternalError):
    pass


class UpstreamError(RelayError):
    """The generation service failed, timed out or answered non-2xx."""


class ConnectionClosed(RelayError):
    """A frame was written to a connection whose stream has ended."""


class DeliveryError(RpcError):
    """A response could not be routed to the requested stream."""

    status_code: int = 500


class ConnectionNotFound(DeliveryError):
    code = RpcErrorCode.CONNECTION_NOT_FOUND
    status_code = 400

    def __init__(self, connection_id: str, header: str = "X-Connection-ID"):
        super().__init__(
            message=f"Invalid {header}: No active SSE connection found for ID '{connection_id}'."
        )
        self.connection_id = connection_id


class ConnectionLost(DeliveryError):
    code = RpcErrorCode.CONNECTION_LOST
    status_code = 500
    message = "SSE connection lost before message could be sent over stream."

    def __init__(self, connection_id: str):
        super().__init__()
        self.connection_id = connection_id
