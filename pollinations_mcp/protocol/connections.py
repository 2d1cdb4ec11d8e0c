"""Live SSE connections and the registry that tracks them."""
import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from pollinations_mcp.core.errors import ConnectionClosed
from pollinations_mcp.core.logging import logger

# pushed onto an outbox to end its stream
CLOSE = None


def new_connection_id() -> str:
    return f"mcp-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass(eq=False)
class Connection:
    id: str = field(default_factory=new_connection_id)
    connected: bool = True
    initialized: bool = False
    client_info: Optional[Dict[str, Any]] = None
    created_at: float = field(default_factory=time.monotonic)
    last_activity: float = field(default_factory=time.monotonic)
    outbox: "asyncio.Queue[Optional[str]]" = field(default_factory=asyncio.Queue, repr=False)
    tasks: Set["asyncio.Task[Any]"] = field(default_factory=set, repr=False)

    def send(self, frame: str) -> None:
        """Queue a frame for the owning stream session to write."""
        if not self.connected:
            raise ConnectionClosed(f"Connection {self.id} is closed")
        self.outbox.put_nowait(frame)

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def bind(self, coro) -> "asyncio.Task[Any]":
        """Run a coroutine as a task that is cancelled if this connection goes away."""
        task = asyncio.ensure_future(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    def close(self) -> None:
        if not self.connected:
            return
        self.connected = False
        for task in list(self.tasks):
            task.cancel()
        self.outbox.put_nowait(CLOSE)


class ConnectionRegistry:
    """Tracks live stream connections by id.

    Every method is synchronous so a mutation can never be observed half done
    across an await.
    """

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def register(self, connection: Connection) -> None:
        if connection.id in self._connections:
            logger.warning(f"[{connection.id}] Connection id collision, replacing existing entry")
        self._connections[connection.id] = connection

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def mark_disconnected(self, connection_id: str) -> None:
        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            connection.close()
            logger.info(f"[{connection_id}] Connection removed ({len(self._connections)} active)")

    def all(self) -> List[Connection]:
        return list(self._connections.values())

    def count(self) -> int:
        return len(self._connections)

    def initialized_count(self) -> int:
        return sum(1 for c in self._connections.values() if c.initialized)

    def close_all(self) -> int:
        """End every open stream; used on shutdown."""
        ids = list(self._connections)
        for connection_id in ids:
            self.mark_disconnected(connection_id)
        return len(ids)
