import asyncio
import os

import uvicorn
from dotenv import load_dotenv

from pollinations_mcp.app.http.api import create_app
from pollinations_mcp.core.config import load_settings
from pollinations_mcp.core.logging import logger


class RelayServer(uvicorn.Server):
    """uvicorn server that ends open SSE streams as soon as a stop signal arrives."""

    def __init__(self, config: uvicorn.Config, connections):
        super().__init__(config)
        self.connections = connections

    def handle_exit(self, sig, frame):
        logger.info(f"Received signal {sig}, closing SSE streams")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            loop.call_soon_threadsafe(self.connections.close_all)
        super().handle_exit(sig, frame)


def main():
    load_dotenv()
    cfg = load_settings()
    api_cfg = cfg.get("app", {}).get("api", {})
    host = api_cfg.get("host", "0.0.0.0")
    port = int(os.environ.get("PORT") or api_cfg.get("port", 3000))
    cfg.setdefault("app", {}).setdefault("api", {})["port"] = port

    app = create_app(cfg)
    server = RelayServer(uvicorn.Config(app, host=host, port=port, reload=False), app.state.connections)
    server.run()


if __name__ == "__main__":
    main()
