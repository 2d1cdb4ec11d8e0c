import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

from pollinations_mcp.core.errors import ToolNotFound
from pollinations_mcp.core.factory import load
from pollinations_mcp.core.interfaces import Tool
from pollinations_mcp.core.types import ToolCallResult

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Static catalog of invocable tools, built once from config"""

    def __init__(self, registry_cfg: List[Dict[str, Any]], enabled: List[str], **dependencies: Any):
        tools: Dict[str, Tool] = {}
        for tcfg in registry_cfg:
            name = tcfg.get("name")
            if name not in enabled:
                continue
            impl = tcfg.get("impl", "")
            args = tcfg.get("args", {}) or {}
            try:
                tool = load(impl, **{**dependencies, **args})
            except (ImportError, AttributeError, TypeError, ValueError):
                logger.exception("Skipping tool %s: could not load %s", name, impl)
                continue
            # registry name wins over the class name
            if hasattr(tool, "_registry_name"):
                tool._registry_name = name
            tools[name] = tool
        self._tools: Mapping[str, Tool] = MappingProxyType(tools)
        logger.info("Tool registry ready: %s", ", ".join(self._tools) or "<empty>")

    def get(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFound(f"Unknown tool: {name}")
        return tool

    def all(self) -> Mapping[str, Tool]:
        return self._tools

    def names(self) -> List[str]:
        return list(self._tools)

    def describe(self) -> List[Dict[str, Any]]:
        return [tool.schema for tool in self._tools.values()]

    async def call(self, name: str, arguments: Dict[str, Any]) -> ToolCallResult:
        tool = self.get(name)
        logger.info("Calling tool: %s", name)
        return await tool.invoke(arguments or {})
