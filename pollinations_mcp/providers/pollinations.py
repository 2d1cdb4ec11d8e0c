"""
pollinations.py - Pollinations generation API client.

Outbound calls for the image and text tools:
- One fixed timeout per call (30s by default)
- No retry and no backoff: the first failure is raised as UpstreamError
- Images are base64-encoded so they can travel inside JSON-RPC
"""

import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

from pollinations_mcp.core.errors import UpstreamError
from pollinations_mcp.core.interfaces import GenerationClient

logger = logging.getLogger(__name__)

IMAGE_MODELS = ["flux", "turbo", "flux-realism", "flux-cablyai", "any-dark"]
TEXT_MODELS = ["openai", "mistral", "claude", "llama", "gemini"]


def _preview(prompt: str, limit: int = 50) -> str:
    return prompt[:limit] + ("..." if len(prompt) > limit else "")


class PollinationsClient(GenerationClient):
    """Async HTTP client for the Pollinations image and text endpoints."""

    def __init__(
        self,
        image_base_url: str = "https://image.pollinations.ai/prompt",
        text_base_url: str = "https://text.pollinations.ai",
        timeout_sec: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            image_base_url: Prefix the URL-encoded prompt is appended to
            text_base_url: Prefix the text model name is appended to
            timeout_sec: Hard timeout applied to every outbound call
            transport: Optional httpx transport override
        """
        self.image_base_url = image_base_url.rstrip("/")
        self.text_base_url = text_base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout_sec)
        self.transport = transport

    def _http(self) -> httpx.AsyncClient:
        # 3xx from upstream are followed, not treated as failures
        return httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, transport=self.transport)

    def build_image_url(
        self,
        prompt: str,
        width: int = 1024,
        height: int = 1024,
        model: str = "flux",
        seed: Optional[int] = None,
    ) -> str:
        params = {
            "width": str(width),
            "height": str(height),
            "model": model,
            "nologo": "true",
            "nofeed": "true",
        }
        if seed is not None:
            params["seed"] = str(seed)
        # same unreserved set as JavaScript's encodeURIComponent
        encoded = quote(prompt, safe="!~*'()")
        return f"{self.image_base_url}/{encoded}?{urlencode(params)}"

    async def generate_image(
        self,
        prompt: str,
        width: int = 1024,
        height: int = 1024,
        model: str = "flux",
        seed: Optional[int] = None,
    ) -> Dict[str, Any]:
        image_url = self.build_image_url(prompt, width=width, height=height, model=model, seed=seed)
        logger.info(f"Generating image: {_preview(prompt)}")
        try:
            async with self._http() as client:
                response = await client.get(image_url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Image generation failed: {e}")
            raise UpstreamError(f"Image generation failed: {e}") from e

        return {
            "success": True,
            "base64": base64.b64encode(response.content).decode("ascii"),
            "url": image_url,
            "contentType": response.headers.get("content-type") or "image/png",
        }

    async def generate_text(self, prompt: str, model: str = "openai") -> Dict[str, Any]:
        logger.info(f"Generating text with {model}: {_preview(prompt)}")
        payload = {"messages": [{"role": "user", "content": prompt}], "jsonMode": False}
        try:
            async with self._http() as client:
                response = await client.post(
                    f"{self.text_base_url}/{model}",
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Text generation failed: {e}")
            raise UpstreamError(f"Text generation failed: {e}") from e

        if "application/json" in (response.headers.get("content-type") or ""):
            content: Any = response.json()
        else:
            content = response.text
        return {"success": True, "content": content}

    def available_models(self) -> Dict[str, List[str]]:
        return {"image": list(IMAGE_MODELS), "text": list(TEXT_MODELS)}
