from enum import IntEnum, StrEnum
from typing import Any, Dict, TypedDict


class RpcErrorCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    # server-defined range
    CONNECTION_NOT_FOUND = -32001
    CONNECTION_LOST = -32002


class FallbackMode(StrEnum):
    DIRECT = "direct"
    BROADCAST = "broadcast"


class ToolCallResult(TypedDict):
    tool: str
    result: Any
    metadata: Dict[str, Any]
