"""
JSON-RPC method dispatch for the MCP relay.

Methods map to coroutine handlers in a registry; there is no string
branching on the method name. Session state (the `initialized` flag) lives on
the stream connection the request is bound to, so one client's `initialize`
never authorizes another.
"""
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pollinations_mcp.core.errors import InternalError, MethodNotFound, NotInitialized, RpcError
from pollinations_mcp.core.logging import logger
from pollinations_mcp.core.tool_registry import ToolRegistry
from pollinations_mcp.protocol.connections import Connection
from pollinations_mcp.protocol.schemas import JsonRpcRequest, error_response, success_response


@dataclass
class RpcContext:
    """Where a request came from: its stream connection, if any."""

    connection: Optional[Connection] = None
    label: str = "direct"

    @classmethod
    def for_connection(cls, connection: Optional[Connection], fallback_label: str = "direct") -> "RpcContext":
        return cls(connection=connection, label=connection.id if connection else fallback_label)


Handler = Callable[[Dict[str, Any], RpcContext], Awaitable[Optional[Dict[str, Any]]]]


class RpcDispatcher:
    def __init__(
        self,
        tools: ToolRegistry,
        *,
        server_name: str = "pollinations-mcp-server",
        server_version: str = "1.0.0",
        protocol_version: str = "2024-11-05",
        strict_initialization: bool = True,
    ):
        self.tools = tools
        self.server_name = server_name
        self.server_version = server_version
        self.protocol_version = protocol_version
        self.strict_initialization = strict_initialization
        self._handlers: Dict[str, Handler] = {
            "initialize": self._initialize,
            "notifications/initialized": self._client_initialized,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    @property
    def methods(self) -> List[str]:
        return list(self._handlers)

    async def dispatch(self, message: JsonRpcRequest, context: RpcContext) -> Optional[Dict[str, Any]]:
        """Run the handler for `message`; None means nothing is sent back."""
        logger.info(f"[{context.label}] Processing MCP: {message.method} (ID: {message.id})")
        try:
            handler = self._handlers.get(message.method)
            if handler is None:
                raise MethodNotFound(f"Unsupported method: {message.method}")
            result = await handler(message.params or {}, context)
        except RpcError as e:
            logger.error(f"[{context.label}] Error processing {message.method}: {e}")
            error = e
        except Exception as e:
            logger.exception(f"[{context.label}] Error processing {message.method}: {e}")
            error = InternalError(str(e))
        else:
            if message.is_notification or result is None:
                return None
            return success_response(message.id, result)

        if message.is_notification:
            return None
        return error_response(message.id, error)

    def _require_initialized(self, context: RpcContext) -> None:
        connection = context.connection
        if self.strict_initialization and connection is not None and not connection.initialized:
            raise NotInitialized("Server not initialized")

    async def _initialize(self, params: Dict[str, Any], context: RpcContext) -> Dict[str, Any]:
        if context.connection is not None:
            context.connection.initialized = True
            context.connection.client_info = params.get("clientInfo")
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {},
                "prompts": {},
            },
            "serverInfo": {"name": self.server_name, "version": self.server_version},
        }

    async def _client_initialized(self, params: Dict[str, Any], context: RpcContext) -> None:
        logger.info(f"[{context.label}] Client initialized notification received")
        return None

    async def _ping(self, params: Dict[str, Any], context: RpcContext) -> Dict[str, Any]:
        return {}

    async def _list_tools(self, params: Dict[str, Any], context: RpcContext) -> Dict[str, Any]:
        self._require_initialized(context)
        return {"tools": self.tools.describe()}

    async def _call_tool(self, params: Dict[str, Any], context: RpcContext) -> Dict[str, Any]:
        self._require_initialized(context)
        name = params.get("name")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise InternalError("Tool arguments must be an object")
        tool_result = await self.tools.call(name, arguments)
        return {"content": [{"type": "text", "text": json.dumps(tool_result, indent=2)}]}
