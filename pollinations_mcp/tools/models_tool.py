from typing import Dict, List

from pollinations_mcp.core.interfaces import GenerationClient
from pollinations_mcp.tools.base import BaseTool


class ListModelsTool(BaseTool):
    """List all available models for image and text generation"""

    def __init__(self, client: GenerationClient):
        super().__init__()
        self.client = client

    async def run(self) -> Dict[str, List[str]]:
        # catalog is static; copy so callers cannot mutate it
        return {kind: list(models) for kind, models in self.client.available_models().items()}
