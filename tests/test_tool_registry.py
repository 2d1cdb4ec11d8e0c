import pytest

from pollinations_mcp.core.errors import ToolNotFound
from pollinations_mcp.core.tool_registry import ToolRegistry
from pollinations_mcp.providers.dummy import DummyGenerationClient

REGISTRY_CFG = [
    {"name": "generate_image", "impl": "pollinations_mcp.tools.image_tool.GenerateImageTool"},
    {"name": "generate_text", "impl": "pollinations_mcp.tools.text_tool.GenerateTextTool"},
    {"name": "list_models", "impl": "pollinations_mcp.tools.models_tool.ListModelsTool"},
    {"name": "broken", "impl": "pollinations_mcp.tools.does_not_exist.Missing"},
]


@pytest.fixture
def registry():
    return ToolRegistry(
        REGISTRY_CFG,
        ["generate_image", "generate_text", "list_models", "broken"],
        client=DummyGenerationClient(),
    )


def test_enabled_tools_are_loaded_and_broken_ones_skipped(registry):
    assert registry.names() == ["generate_image", "generate_text", "list_models"]


def test_disabled_tools_are_not_loaded():
    registry = ToolRegistry(REGISTRY_CFG, ["list_models"], client=DummyGenerationClient())
    assert registry.names() == ["list_models"]


def test_registry_is_read_only(registry):
    with pytest.raises(TypeError):
        registry.all()["extra"] = object()


def test_registry_name_overrides_class_name(registry):
    assert registry.get("generate_image").name == "generate_image"
    assert [d["name"] for d in registry.describe()] == ["generate_image", "generate_text", "list_models"]


def test_unknown_tool_raises_tool_not_found(registry):
    with pytest.raises(ToolNotFound) as exc_info:
        registry.get("nope")
    assert exc_info.value.to_dict() == {"code": -32601, "message": "Tool not found", "data": "Unknown tool: nope"}


@pytest.mark.asyncio
async def test_call_wraps_result_with_metadata(registry):
    result = await registry.call("generate_text", {"prompt": "hello"})
    assert result["tool"] == "generate_text"
    assert result["result"] == {"success": True, "content": "[openai] hello"}
    assert result["metadata"]["prompt"] == "hello"
    assert result["metadata"]["model"] == "openai"
    assert "timestamp" in result["metadata"]
