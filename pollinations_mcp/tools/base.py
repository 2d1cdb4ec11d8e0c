import inspect
import logging
import re
from abc import abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union, get_args, get_origin, get_type_hints

from pollinations_mcp.core.errors import ToolArgumentError
from pollinations_mcp.core.interfaces import Tool
from pollinations_mcp.core.types import ToolCallResult

logger = logging.getLogger(__name__)

# =============================
# Tool Authoring Guidelines
# =============================
#
# 1. Subclass BaseTool and implement async run() with explicit, type-annotated arguments.
# 2. Document each argument in a Google-style Args: section of run()'s docstring.
# 3. The first paragraph of the class docstring becomes the tool description.
# 4. Literal[...] annotations become `enum` constraints; defaults are published as `default`.
# 5. List the arguments worth echoing back in `metadata_fields`.

_JSON_TYPES = {str: "string", int: "integer", float: "number", bool: "boolean"}


def _unwrap_optional(hint: Any) -> Any:
    if get_origin(hint) is Union:
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _json_type(hint: Any) -> Tuple[str, Optional[List[Any]]]:
    hint = _unwrap_optional(hint)
    if get_origin(hint) is Literal:
        values = list(get_args(hint))
        return _JSON_TYPES.get(type(values[0]), "string"), values
    return _JSON_TYPES.get(hint, "string"), None


class BaseTool(Tool):

    metadata_fields: Tuple[str, ...] = ()

    def __init__(self):
        self._registry_name: str | None = None

    @staticmethod
    def _extract_param_descriptions(docstring: str) -> dict:
        """
        Parse the docstring for an Args: section and return a mapping of param name to description.
        """
        if not docstring:
            return {}
        param_desc = {}
        args_section = re.search(r"Args?:\s*(.*?)(^\S|\Z)", docstring, re.DOTALL | re.MULTILINE)
        if args_section:
            for line in args_section.group(1).splitlines():
                match = re.match(r"\s*(\w+)\s*:\s*(.*)", line)
                if match:
                    name, desc = match.groups()
                    param_desc[name] = desc.strip()
        return param_desc

    @property
    def name(self) -> str:
        if self._registry_name:
            return self._registry_name
        return self.__class__.__name__

    @property
    def description(self) -> str:
        doc = inspect.getdoc(self.__class__) or ""
        return doc.split("\n\n")[0].strip()

    def _parameters(self) -> List[inspect.Parameter]:
        return [p for name, p in inspect.signature(self.run).parameters.items() if name != "self"]

    @property
    def schema(self) -> Dict[str, Any]:
        """MCP tool descriptor derived from the run() signature."""
        hints = get_type_hints(self.run)
        param_docs = self._extract_param_descriptions(inspect.getdoc(self.run) or "")
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for param in self._parameters():
            typ, enum = _json_type(hints.get(param.name, str))
            prop: Dict[str, Any] = {"type": typ, "description": param_docs.get(param.name, "")}
            if enum:
                prop["enum"] = enum
            if param.default is inspect.Parameter.empty:
                required.append(param.name)
            elif param.default is not None:
                prop["default"] = param.default
            properties[param.name] = prop
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {"type": "object", "properties": properties, "required": required},
        }

    def bind_arguments(self, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Map client arguments onto run() keywords, applying defaults."""
        arguments = dict(arguments or {})
        bound: Dict[str, Any] = {}
        for param in self._parameters():
            value = arguments.pop(param.name, None)
            if value is None:
                if param.default is inspect.Parameter.empty:
                    raise ToolArgumentError(f"Missing required argument: {param.name}")
                value = param.default
            bound[param.name] = value
        if arguments:
            logger.debug("Ignoring unknown arguments for %s: %s", self.name, sorted(arguments))
        return bound

    async def invoke(self, arguments: Dict[str, Any]) -> ToolCallResult:
        kwargs = self.bind_arguments(arguments)
        result = await self.run(**kwargs)
        metadata = {field: kwargs.get(field) for field in self.metadata_fields}
        metadata["timestamp"] = datetime.now(timezone.utc).isoformat()
        return {"tool": self.name, "result": result, "metadata": metadata}

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Execute tool with given arguments (schema will match signature)."""
        raise NotImplementedError()
