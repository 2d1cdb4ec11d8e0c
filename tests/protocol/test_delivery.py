import pytest

from pollinations_mcp.core.errors import ConnectionNotFound
from pollinations_mcp.core.types import FallbackMode
from pollinations_mcp.protocol.connections import Connection, ConnectionRegistry
from pollinations_mcp.protocol.delivery import DeliveryRouter
from pollinations_mcp.protocol.sse import SseEmitter

RESPONSE = {"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}


@pytest.fixture
def registry():
    return ConnectionRegistry()


def _live(registry):
    conn = Connection()
    registry.register(conn)
    return conn


def test_notification_result_is_204(registry):
    delivery = DeliveryRouter(registry).deliver(None, None, connection_id=_live(registry).id)
    assert delivery.status_code == 204
    assert delivery.body is None


def test_tagged_response_goes_to_its_stream_only(registry):
    emitter = SseEmitter()
    router = DeliveryRouter(registry, emitter=emitter)
    target, other = _live(registry), _live(registry)

    delivery = router.deliver(RESPONSE, 1, connection_id=target.id)

    assert delivery.status_code == 202
    assert delivery.body == {"jsonrpc": "2.0", "id": 1, "result": {"status": "received", "messageId": 1}}
    assert target.outbox.get_nowait() == emitter.message(RESPONSE)
    assert other.outbox.empty()


def test_resolve_unknown_connection(registry):
    router = DeliveryRouter(registry)
    with pytest.raises(ConnectionNotFound) as exc_info:
        router.resolve("mcp-0-missing")
    error = exc_info.value
    assert error.status_code == 400
    assert error.code == -32001
    assert error.message == "Invalid X-Connection-ID: No active SSE connection found for ID 'mcp-0-missing'."


def test_resolve_closed_connection(registry):
    conn = _live(registry)
    conn.close()
    with pytest.raises(ConnectionNotFound):
        DeliveryRouter(registry).resolve(conn.id)


def test_stream_closed_between_dispatch_and_delivery(registry):
    conn = _live(registry)
    registry.mark_disconnected(conn.id)

    delivery = DeliveryRouter(registry).deliver(RESPONSE, 1, connection_id=conn.id)

    assert delivery.status_code == 500
    assert delivery.body == {
        "jsonrpc": "2.0",
        "id": 1,
        "error": {"code": -32002, "message": "SSE connection lost before message could be sent over stream."},
    }


def test_untagged_direct_fallback(registry):
    conn = _live(registry)
    delivery = DeliveryRouter(registry).deliver(RESPONSE, 1)
    assert delivery.status_code == 200
    assert delivery.body == RESPONSE
    assert conn.outbox.empty()


def test_untagged_broadcast_fallback(registry):
    router = DeliveryRouter(registry, fallback=FallbackMode.BROADCAST)
    conns = [_live(registry), _live(registry)]
    closed = _live(registry)
    closed.close()

    delivery = router.deliver(RESPONSE, 1)

    assert delivery.status_code == 202
    assert delivery.body["result"] == {"status": "broadcast", "deliveredTo": 2}
    for conn in conns:
        assert conn.outbox.qsize() == 1


def test_broadcast_without_streams_answers_directly(registry):
    delivery = DeliveryRouter(registry, fallback=FallbackMode.BROADCAST).deliver(RESPONSE, 1)
    assert delivery.status_code == 200
    assert delivery.body == RESPONSE


def test_per_call_fallback_overrides_default(registry):
    _live(registry)
    router = DeliveryRouter(registry, fallback=FallbackMode.BROADCAST)
    delivery = router.deliver(RESPONSE, 1, fallback=FallbackMode.DIRECT)
    assert delivery.status_code == 200
