from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class GenerationClient(ABC):
    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        width: int = 1024,
        height: int = 1024,
        model: str = "flux",
        seed: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Return {success, base64, url, contentType} for a generated image"""
        ...

    @abstractmethod
    async def generate_text(self, prompt: str, model: str = "openai") -> Dict[str, Any]:
        """Return {success, content} for a generated completion"""
        ...

    @abstractmethod
    def available_models(self) -> Dict[str, List[str]]:
        """Static model catalog; must not touch the network."""
        ...


class Tool(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def schema(self) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def invoke(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        ...
