import json
import time
from typing import Any, Optional

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class SseEmitter:
    """Formats Server-Sent Events frames as text"""

    def __init__(self, handshake_event: Optional[str] = "system", message_event: Optional[str] = "mcp"):
        self.handshake_event = handshake_event or None
        self.message_event = message_event or None

    @staticmethod
    def frame(data: Any, event: Optional[str] = None) -> str:
        payload = data if isinstance(data, str) else json.dumps(data)
        lines = [f"event: {event}"] if event else []
        # multi-line payloads need one data: field per line
        lines.extend(f"data: {line}" for line in payload.splitlines() or [""])
        return "\n".join(lines) + "\n\n"

    def handshake(self, connection_id: str) -> str:
        return self.frame({"type": "connection_ready", "connectionId": connection_id}, self.handshake_event)

    def message(self, response: Any) -> str:
        return self.frame(response, self.message_event)

    @staticmethod
    def keepalive(now_ms: Optional[int] = None) -> str:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return f": keepalive {now_ms}\n\n"
