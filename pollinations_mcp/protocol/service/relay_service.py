import asyncio
from typing import Any, Optional

from pollinations_mcp.core.errors import ConnectionLost, DeliveryError, RpcError
from pollinations_mcp.core.logging import logger
from pollinations_mcp.core.types import FallbackMode
from pollinations_mcp.protocol.connections import Connection, ConnectionRegistry
from pollinations_mcp.protocol.delivery import Delivery, DeliveryRouter
from pollinations_mcp.protocol.dispatcher import RpcContext, RpcDispatcher
from pollinations_mcp.protocol.schemas import JsonRpcRequest, error_response, parse_request, request_id_of

# sentinel: the stream went away before the response existed
_LOST = object()


class RelayService:
    def __init__(
        self,
        dispatcher: RpcDispatcher,
        router: DeliveryRouter,
        connections: ConnectionRegistry,
        cancel_on_disconnect: bool = True,
    ):
        """Bridge between stateless POSTs and the stream they should answer on"""
        self.dispatcher = dispatcher
        self.router = router
        self.connections = connections
        self.cancel_on_disconnect = cancel_on_disconnect

    async def handle(
        self,
        raw: Any,
        connection_id: Optional[str] = None,
        fallback: Optional[FallbackMode] = None,
    ) -> Delivery:
        """Validate, dispatch and route one JSON-RPC message."""
        try:
            message = parse_request(raw)
        except RpcError as e:
            logger.warning(f"[{connection_id or 'unknown'}] Rejected message: {e}")
            return Delivery(status_code=400, body=error_response(request_id_of(raw), e))

        target: Optional[Connection] = None
        if connection_id:
            try:
                target = self.router.resolve(connection_id)
            except DeliveryError as e:
                logger.warning(f"[{connection_id}] {e.message}")
                return self.router.failure(e, message.id)

        context = RpcContext.for_connection(target, fallback_label=f"http-post-{message.method}")
        if target is not None and self.cancel_on_disconnect:
            response = await self._dispatch_bound(message, context, target)
            if response is _LOST:
                return self.router.failure(ConnectionLost(target.id), message.id)
        else:
            response = await self.dispatcher.dispatch(message, context)

        if response is None:
            logger.info(f"[{context.label}] Processed notification: {message.method} (ID: {message.id})")
        return self.router.deliver(response, message.id, connection_id=connection_id, fallback=fallback)

    async def _dispatch_bound(self, message: JsonRpcRequest, context: RpcContext, target: Connection):
        """Dispatch as a task owned by the target connection; it dies with the stream."""
        task = target.bind(self.dispatcher.dispatch(message, context))
        await asyncio.wait({task})
        if task.cancelled():
            logger.warning(f"[{target.id}] Stream closed while {message.method} (ID: {message.id}) was in flight")
            return _LOST
        return task.result()

