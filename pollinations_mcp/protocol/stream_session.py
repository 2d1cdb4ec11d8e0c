import asyncio
from typing import AsyncGenerator, Awaitable, Callable, Optional

from pollinations_mcp.core.logging import logger
from pollinations_mcp.protocol.connections import CLOSE, Connection, ConnectionRegistry
from pollinations_mcp.protocol.sse import SseEmitter


class StreamSession:
    """One long-lived SSE stream: handshake, routed frames, keep-alives, teardown.

    The frames() generator is the only writer to the transport. Other parties
    reach it through Connection.send(), which queues onto the outbox.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        is_disconnected: Callable[[], Awaitable[bool]],
        *,
        keepalive_interval: float = 10.0,
        emitter: Optional[SseEmitter] = None,
        connection: Optional[Connection] = None,
    ):
        self.registry = registry
        self.is_disconnected = is_disconnected
        self.keepalive_interval = keepalive_interval
        self.emitter = emitter or SseEmitter()
        self.connection = connection or Connection()

    @property
    def connection_id(self) -> str:
        return self.connection.id

    async def _next_frame(self) -> Optional[str]:
        """Wait for a routed frame; on idle return a keep-alive, or CLOSE if the peer is gone."""
        try:
            return await asyncio.wait_for(self.connection.outbox.get(), timeout=self.keepalive_interval)
        except asyncio.TimeoutError:
            pass
        if not self.connection.connected or await self.is_disconnected():
            logger.info(f"[{self.connection_id}] Keep-alive found transport closed")
            return CLOSE
        self.connection.touch()
        return self.emitter.keepalive()

    async def frames(self) -> AsyncGenerator[str, None]:
        self.registry.register(self.connection)
        logger.info(f"[{self.connection_id}] SSE connection established ({self.registry.count()} active)")
        try:
            yield self.emitter.handshake(self.connection_id)
            logger.info(f"[{self.connection_id}] Sent connection_ready event")
            while True:
                frame = await self._next_frame()
                if frame is CLOSE:
                    break
                yield frame
        except asyncio.CancelledError:
            logger.info(f"[{self.connection_id}] SSE stream cancelled")
            raise
        except Exception:
            logger.exception(f"[{self.connection_id}] SSE stream error")
            raise
        finally:
            self.connection.close()
            if self.registry.get(self.connection_id) is self.connection:
                self.registry.mark_disconnected(self.connection_id)
            logger.info(f"[{self.connection_id}] SSE connection closed")
