from typing import Any, Dict, Literal, Optional

from pollinations_mcp.core.interfaces import GenerationClient
from pollinations_mcp.tools.base import BaseTool

ImageModel = Literal["flux", "turbo", "flux-realism", "flux-cablyai", "any-dark"]


class GenerateImageTool(BaseTool):
    """Generate an image from a text prompt using Pollinations AI"""

    metadata_fields = ("prompt", "model")

    def __init__(self, client: GenerationClient):
        super().__init__()
        self.client = client

    async def run(
        self,
        prompt: str,
        width: int = 1024,
        height: int = 1024,
        model: ImageModel = "flux",
        seed: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Args:
            prompt: Text description of the image to generate
            width: Image width in pixels (default: 1024)
            height: Image height in pixels (default: 1024)
            model: Image generation model to use
            seed: Random seed for reproducible results (optional)
        """
        return await self.client.generate_image(
            prompt, width=width, height=height, model=model, seed=seed
        )
