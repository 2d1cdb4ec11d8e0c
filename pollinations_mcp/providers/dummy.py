import asyncio
import base64
from typing import Any, Dict, List, Optional

from pollinations_mcp.core.interfaces import GenerationClient
from pollinations_mcp.providers.pollinations import IMAGE_MODELS, TEXT_MODELS

# 1x1 transparent PNG
_PIXEL_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class DummyGenerationClient(GenerationClient):
    """Offline stand-in for the Pollinations API (local runs and tests)."""

    def __init__(self, latency_sec: float = 0.0):
        self.latency_sec = latency_sec

    async def generate_image(
        self,
        prompt: str,
        width: int = 1024,
        height: int = 1024,
        model: str = "flux",
        seed: Optional[int] = None,
    ) -> Dict[str, Any]:
        await asyncio.sleep(self.latency_sec)
        return {
            "success": True,
            "base64": base64.b64encode(_PIXEL_PNG).decode("ascii"),
            "url": f"dummy://image/{model}/{width}x{height}",
            "contentType": "image/png",
        }

    async def generate_text(self, prompt: str, model: str = "openai") -> Dict[str, Any]:
        await asyncio.sleep(self.latency_sec)
        return {"success": True, "content": f"[{model}] {prompt}"}

    def available_models(self) -> Dict[str, List[str]]:
        return {"image": list(IMAGE_MODELS), "text": list(TEXT_MODELS)}
