from typing import Any, Dict, Literal

from pollinations_mcp.core.interfaces import GenerationClient
from pollinations_mcp.tools.base import BaseTool

TextModel = Literal["openai", "mistral", "claude", "llama", "gemini"]


class GenerateTextTool(BaseTool):
    """Generate text content using Pollinations AI language models"""

    metadata_fields = ("prompt", "model")

    def __init__(self, client: GenerationClient):
        super().__init__()
        self.client = client

    async def run(self, prompt: str, model: TextModel = "openai") -> Dict[str, Any]:
        """
        Args:
            prompt: Text prompt for content generation
            model: Language model to use for generation
        """
        return await self.client.generate_text(prompt, model=model)
