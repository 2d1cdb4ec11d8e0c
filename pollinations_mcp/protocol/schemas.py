"""
JSON-RPC 2.0 envelope models.
"""
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pollinations_mcp.core.errors import InvalidRequest, RpcError


class JsonRpcRequest(BaseModel):
    """Incoming request or notification."""
    model_config = ConfigDict(extra="allow")

    jsonrpc: Literal["2.0"]
    id: Optional[Union[int, float, str]] = None
    method: str = Field(..., min_length=1)
    params: Optional[Dict[str, Any]] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class JsonRpcError(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None


class JsonRpcResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[Union[int, float, str]] = None
    result: Optional[Any] = None
    error: Optional[JsonRpcError] = None


def success_response(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def error_response(request_id: Any, error: RpcError) -> Dict[str, Any]:
    body = JsonRpcResponse(id=request_id, error=JsonRpcError(**error.to_dict())).model_dump(exclude_none=True)
    # id is mandatory in error responses, even when null
    body["id"] = request_id
    return body


def request_id_of(raw: Any) -> Any:
    """Best-effort id of a message that may not have passed validation."""
    request_id = raw.get("id") if isinstance(raw, dict) else None
    if isinstance(request_id, (int, float, str)) and not isinstance(request_id, bool):
        return request_id
    return None


def parse_request(raw: Any) -> JsonRpcRequest:
    """Validate an envelope, raising InvalidRequest before anything is dispatched."""
    if not isinstance(raw, dict):
        raise InvalidRequest(message="Invalid Request - expected a single JSON-RPC object")
    if raw.get("jsonrpc") != "2.0":
        raise InvalidRequest(
            message="Invalid Request - missing or invalid jsonrpc version or malformed message body"
        )
    try:
        return JsonRpcRequest.model_validate(raw)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise InvalidRequest(data=f"Invalid fields: {', '.join(fields)}") from e
