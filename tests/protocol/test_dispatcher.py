import json

import pytest
from unittest.mock import AsyncMock

from pollinations_mcp.core.errors import InvalidRequest, UpstreamError
from pollinations_mcp.core.tool_registry import ToolRegistry
from pollinations_mcp.protocol.connections import Connection
from pollinations_mcp.protocol.dispatcher import RpcContext, RpcDispatcher
from pollinations_mcp.protocol.schemas import JsonRpcRequest, error_response, parse_request, request_id_of
from pollinations_mcp.providers.dummy import DummyGenerationClient

REGISTRY_CFG = [
    {"name": "generate_image", "impl": "pollinations_mcp.tools.image_tool.GenerateImageTool"},
    {"name": "generate_text", "impl": "pollinations_mcp.tools.text_tool.GenerateTextTool"},
    {"name": "list_models", "impl": "pollinations_mcp.tools.models_tool.ListModelsTool"},
]


def make_dispatcher(client=None, strict=True):
    tools = ToolRegistry(
        REGISTRY_CFG,
        [t["name"] for t in REGISTRY_CFG],
        client=client or DummyGenerationClient(),
    )
    return RpcDispatcher(tools, server_version="1.0.0", strict_initialization=strict)


def msg(method, id=None, params=None):
    raw = {"jsonrpc": "2.0", "method": method}
    if id is not None:
        raw["id"] = id
    if params is not None:
        raw["params"] = params
    return JsonRpcRequest.model_validate(raw)


class TestEnvelope:

    def test_missing_version_is_rejected(self):
        with pytest.raises(InvalidRequest) as exc_info:
            parse_request({"id": 1, "method": "tools/list"})
        assert exc_info.value.code == -32600

    def test_batch_is_rejected(self):
        with pytest.raises(InvalidRequest):
            parse_request([{"jsonrpc": "2.0", "id": 1, "method": "ping"}])

    def test_missing_method_names_the_field(self):
        with pytest.raises(InvalidRequest) as exc_info:
            parse_request({"jsonrpc": "2.0", "id": 1})
        assert exc_info.value.data == "Invalid fields: method"

    def test_error_response_always_carries_id(self):
        assert error_response(None, InvalidRequest()) == {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": -32600, "message": "Invalid Request"},
        }

    def test_notification_has_no_id(self):
        assert msg("notifications/initialized").is_notification
        assert not msg("ping", id=0).is_notification

    def test_fractional_numeric_id_is_accepted(self):
        assert parse_request({"jsonrpc": "2.0", "id": 1.5, "method": "ping"}).id == 1.5

    def test_request_id_of_keeps_fractional_ids(self):
        with pytest.raises(InvalidRequest):
            parse_request({"jsonrpc": "2.0", "id": 2.5})
        assert request_id_of({"jsonrpc": "2.0", "id": 2.5}) == 2.5
        assert request_id_of({"jsonrpc": "2.0", "id": True}) is None


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_initialize_marks_only_the_calling_connection(self):
        dispatcher = make_dispatcher()
        a, b = Connection(), Connection()

        response = await dispatcher.dispatch(
            msg("initialize", 1, {"clientInfo": {"name": "probe"}}), RpcContext.for_connection(a)
        )
        assert response["id"] == 1
        result = response["result"]
        assert result["protocolVersion"] == "2024-11-05"
        assert result["capabilities"]["tools"] == {"listChanged": False}
        assert result["serverInfo"] == {"name": "pollinations-mcp-server", "version": "1.0.0"}

        assert a.initialized is True
        assert a.client_info == {"name": "probe"}
        assert b.initialized is False

    @pytest.mark.asyncio
    async def test_tools_list_requires_initialize_on_stream(self):
        dispatcher = make_dispatcher()
        response = await dispatcher.dispatch(msg("tools/list", 2), RpcContext.for_connection(Connection()))
        assert response == {
            "jsonrpc": "2.0",
            "id": 2,
            "error": {"code": -32603, "message": "Internal error", "data": "Server not initialized"},
        }

    @pytest.mark.asyncio
    async def test_direct_requests_are_not_gated(self):
        dispatcher = make_dispatcher()
        response = await dispatcher.dispatch(msg("tools/list", 3), RpcContext())
        names = [t["name"] for t in response["result"]["tools"]]
        assert names == ["generate_image", "generate_text", "list_models"]

    @pytest.mark.asyncio
    async def test_lenient_mode_skips_the_gate(self):
        dispatcher = make_dispatcher(strict=False)
        response = await dispatcher.dispatch(msg("tools/list", 4), RpcContext.for_connection(Connection()))
        assert "result" in response

    @pytest.mark.asyncio
    async def test_notifications_produce_no_response(self):
        dispatcher = make_dispatcher()
        assert await dispatcher.dispatch(msg("notifications/initialized"), RpcContext()) is None
        # unknown method as a notification is also silent
        assert await dispatcher.dispatch(msg("notifications/unknown"), RpcContext()) is None

    @pytest.mark.asyncio
    async def test_ping(self):
        response = await make_dispatcher().dispatch(msg("ping", "p-1"), RpcContext())
        assert response == {"jsonrpc": "2.0", "id": "p-1", "result": {}}

    @pytest.mark.asyncio
    async def test_ping_echoes_fractional_id(self):
        response = await make_dispatcher().dispatch(msg("ping", 1.5), RpcContext())
        assert response == {"jsonrpc": "2.0", "id": 1.5, "result": {}}

    @pytest.mark.asyncio
    async def test_unknown_method(self):
        response = await make_dispatcher().dispatch(msg("resources/list", 5), RpcContext())
        assert response["error"] == {
            "code": -32601,
            "message": "Method not found",
            "data": "Unsupported method: resources/list",
        }


class TestToolCalls:

    @pytest.mark.asyncio
    async def test_call_wraps_tool_output_as_text_content(self):
        response = await make_dispatcher().dispatch(
            msg("tools/call", 6, {"name": "generate_text", "arguments": {"prompt": "hello"}}), RpcContext()
        )
        content = response["result"]["content"]
        assert len(content) == 1
        assert content[0]["type"] == "text"
        payload = json.loads(content[0]["text"])
        assert payload["tool"] == "generate_text"
        assert payload["result"]["content"] == "[openai] hello"
        # pretty-printed
        assert "\n  " in content[0]["text"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        response = await make_dispatcher().dispatch(
            msg("tools/call", 7, {"name": "nope", "arguments": {}}), RpcContext()
        )
        assert response["error"]["code"] == -32601
        assert response["error"]["data"] == "Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_missing_prompt(self):
        response = await make_dispatcher().dispatch(
            msg("tools/call", 8, {"name": "generate_image", "arguments": {}}), RpcContext()
        )
        assert response["id"] == 8
        assert response["error"]["code"] == -32603
        assert response["error"]["data"] == "Missing required argument: prompt"

    @pytest.mark.asyncio
    async def test_upstream_failure_becomes_internal_error(self):
        client = DummyGenerationClient()
        client.generate_image = AsyncMock(side_effect=UpstreamError("Image generation failed: 502 Bad Gateway"))
        response = await make_dispatcher(client).dispatch(
            msg("tools/call", 9, {"name": "generate_image", "arguments": {"prompt": "x"}}), RpcContext()
        )
        assert response == {
            "jsonrpc": "2.0",
            "id": 9,
            "error": {"code": -32603, "message": "Internal error", "data": "Image generation failed: 502 Bad Gateway"},
        }
        client.generate_image.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_object_arguments(self):
        response = await make_dispatcher().dispatch(
            msg("tools/call", 10, {"name": "generate_text", "arguments": ["x"]}), RpcContext()
        )
        assert response["error"]["code"] == -32603
