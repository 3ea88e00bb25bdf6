import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketDisconnect, WebSocketState

from signalbox.modules.relay import DeliveryStatus, WebSocketEndpoint


def make_socket(state=WebSocketState.CONNECTED):
    ws = MagicMock()
    ws.client_state = state
    ws.application_state = state
    ws.send_text = AsyncMock()
    return ws


@pytest.mark.asyncio
async def test_send_text_delivered():
    ws = make_socket()
    endpoint = WebSocketEndpoint(ws)

    status = await endpoint.send_text("hello")

    assert status == DeliveryStatus.DELIVERED
    ws.send_text.assert_awaited_once_with("hello")


@pytest.mark.asyncio
async def test_send_json_compact():
    ws = make_socket()
    endpoint = WebSocketEndpoint(ws)

    await endpoint.send_json({"type": "session-full"})

    sent = ws.send_text.await_args[0][0]
    assert json.loads(sent) == {"type": "session-full"}


@pytest.mark.asyncio
@pytest.mark.parametrize("state", [WebSocketState.CONNECTING, WebSocketState.DISCONNECTED])
async def test_not_open_drops(state):
    ws = make_socket(state)
    endpoint = WebSocketEndpoint(ws)

    assert endpoint.is_open is False
    assert await endpoint.send_text("x") == DeliveryStatus.DROPPED
    ws.send_text.assert_not_called()


@pytest.mark.asyncio
async def test_mark_closed_drops():
    ws = make_socket()
    endpoint = WebSocketEndpoint(ws)
    endpoint.mark_closed()

    assert await endpoint.send_text("x") == DeliveryStatus.DROPPED
    ws.send_text.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [WebSocketDisconnect(1006), RuntimeError("closed"), OSError("reset")])
async def test_failed_send_drops_and_closes(error):
    ws = make_socket()
    ws.send_text.side_effect = error
    endpoint = WebSocketEndpoint(ws)

    assert await endpoint.send_text("x") == DeliveryStatus.DROPPED
    assert endpoint.is_open is False


@pytest.mark.asyncio
async def test_slow_send_abandoned():
    ws = make_socket()

    async def never_finishes(text):
        await asyncio.sleep(10)

    ws.send_text = never_finishes
    endpoint = WebSocketEndpoint(ws, send_timeout=0.01)

    assert await endpoint.send_text("x") == DeliveryStatus.DROPPED


@pytest.mark.asyncio
async def test_timed_out_send_closes_endpoint():
    """After an abandoned write the socket is not reused."""
    ws = make_socket()
    calls = []

    async def never_finishes(text):
        calls.append(text)
        await asyncio.sleep(10)

    ws.send_text = never_finishes
    endpoint = WebSocketEndpoint(ws, send_timeout=0.01)

    assert await endpoint.send_text("first") == DeliveryStatus.DROPPED
    assert endpoint.is_open is False
    assert await endpoint.send_text("second") == DeliveryStatus.DROPPED
    assert calls == ["first"]


@pytest.mark.asyncio
async def test_queued_send_bounded_by_one_timeout():
    """A send waiting behind a stuck write gives up within its own timeout."""
    ws = make_socket()

    async def never_finishes(text):
        await asyncio.sleep(10)

    ws.send_text = never_finishes
    endpoint = WebSocketEndpoint(ws, send_timeout=0.2)
    loop = asyncio.get_running_loop()

    started = loop.time()
    results = await asyncio.gather(*(endpoint.send_text(str(i)) for i in range(3)))
    elapsed = loop.time() - started

    assert results == [DeliveryStatus.DROPPED] * 3
    assert elapsed < 0.35


def test_endpoint_ids_unique():
    assert WebSocketEndpoint(make_socket()).endpoint_id != WebSocketEndpoint(make_socket()).endpoint_id
