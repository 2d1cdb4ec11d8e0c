"""
Delivery Router: decides where a dispatcher response goes.

- notification consumed      -> 204, no stream touched
- live target connection     -> SSE frame on that stream, 202 acknowledgment to the caller
- unknown / closed target    -> DeliveryError to the caller, response dropped
- no target                  -> configured fallback (direct body, or broadcast)
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pollinations_mcp.core.errors import ConnectionClosed, ConnectionLost, ConnectionNotFound, DeliveryError
from pollinations_mcp.core.logging import logger
from pollinations_mcp.core.types import FallbackMode
from pollinations_mcp.protocol.connections import Connection, ConnectionRegistry
from pollinations_mcp.protocol.schemas import error_response
from pollinations_mcp.protocol.sse import SseEmitter


@dataclass
class Delivery:
    """What the HTTP caller receives."""

    status_code: int
    body: Optional[Dict[str, Any]] = None
    connection_id: Optional[str] = None


class DeliveryRouter:
    def __init__(
        self,
        connections: ConnectionRegistry,
        *,
        fallback: FallbackMode = FallbackMode.DIRECT,
        emitter: Optional[SseEmitter] = None,
        connection_header: str = "X-Connection-ID",
    ):
        self.connections = connections
        self.fallback = FallbackMode(fallback)
        self.emitter = emitter or SseEmitter()
        self.connection_header = connection_header

    def resolve(self, connection_id: str) -> Connection:
        """Return the live connection for `connection_id` or raise ConnectionNotFound."""
        connection = self.connections.get(connection_id)
        if connection is None or not connection.connected:
            raise ConnectionNotFound(connection_id, header=self.connection_header)
        return connection

    def deliver(
        self,
        response: Optional[Dict[str, Any]],
        request_id: Any = None,
        connection_id: Optional[str] = None,
        fallback: Optional[FallbackMode] = None,
    ) -> Delivery:
        if response is None:
            return Delivery(status_code=204, connection_id=connection_id)

        if connection_id:
            return self._to_stream(response, request_id, connection_id)

        mode = FallbackMode(fallback or self.fallback)
        if mode is FallbackMode.BROADCAST:
            delivered = self.broadcast(response)
            if delivered:
                return Delivery(
                    status_code=202,
                    body={
                        "jsonrpc": "2.0",
                        "id": request_id,
                        "result": {"status": "broadcast", "deliveredTo": delivered},
                    },
                )
            logger.warning(f"No live connections to broadcast response {request_id}; returning it directly")
        return Delivery(status_code=200, body=response)

    def _to_stream(self, response: Dict[str, Any], request_id: Any, connection_id: str) -> Delivery:
        connection = self.connections.get(connection_id)
        try:
            if connection is None:
                raise ConnectionClosed(connection_id)
            connection.send(self.emitter.message(response))
        except ConnectionClosed:
            logger.error(f"[{connection_id}] SSE connection lost or invalid before message dispatch (ID: {request_id})")
            return self.failure(ConnectionLost(connection_id), request_id)
        logger.info(f"[{connection_id}] MCP response (ID: {request_id}) queued for SSE delivery")
        return Delivery(
            status_code=202,
            body={
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {"status": "received", "messageId": request_id},
            },
            connection_id=connection_id,
        )

    def broadcast(self, response: Dict[str, Any]) -> int:
        frame = self.emitter.message(response)
        delivered = 0
        for connection in self.connections.all():
            try:
                connection.send(frame)
            except ConnectionClosed:
                continue
            delivered += 1
        return delivered

    @staticmethod
    def failure(error: DeliveryError, request_id: Any = None) -> Delivery:
        return Delivery(
            status_code=error.status_code,
            body=error_response(request_id, error),
            connection_id=getattr(error, "connection_id", None),
        )
