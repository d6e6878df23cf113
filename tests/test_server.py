import asyncio
import json

import pytest
import websockets

from router import Router
from signaling_server import SignalingServer, parse_args


@pytest.fixture
async def server_url():
    server = SignalingServer(Router())
    async with server.serve("127.0.0.1", 0) as ws_server:
        port = next(iter(ws_server.sockets)).getsockname()[1]
        yield f"ws://127.0.0.1:{port}"


async def send(ws, **message):
    await ws.send(json.dumps(message))


async def expect(ws, message_type, timeout=2):
    """Read frames until one of message_type arrives"""
    while True:
        message = json.loads(await asyncio.wait_for(ws.recv(), timeout))
        if message['type'] == message_type:
            return message


async def test_pair_and_relay_end_to_end(server_url):
    async with websockets.connect(server_url) as a1, websockets.connect(server_url) as a2:
        await send(a1, type="register", id="A1", role="peer")
        assert await expect(a1, "registered") == {'type': 'registered', 'id': 'A1', 'role': 'peer'}

        await send(a2, type="register", id="A2", role="peer")
        assert (await expect(a2, "startPair"))['partnerId'] == "A1"
        assert (await expect(a1, "partnerOnline"))['partnerId'] == "A2"

        await send(a2, type="relay", to="A1", payload={'type': 'offer', 'sdp': 'v=0'})
        relayed = await expect(a1, "relay")
        assert relayed['payload'] == {'type': 'offer', 'sdp': 'v=0', 'from': 'A2'}


async def test_duplicate_login_closes_old_socket(server_url):
    async with websockets.connect(server_url) as old, websockets.connect(server_url) as new:
        await send(old, type="register", id="C1", role="peer")
        await expect(old, "registered")

        await send(new, type="register", id="C1", role="peer")
        await expect(new, "registered")

        notice = await expect(old, "forceDisconnect")
        assert notice['reason']
        with pytest.raises(websockets.exceptions.ConnectionClosed):
            await asyncio.wait_for(old.recv(), 2)
        assert old.close_code == 4000

        # The new login still works
        await send(new, type="relay", to="Nobody", payload={})
        assert await expect(new, "peerOffline") == {'type': 'peerOffline', 'to': 'Nobody'}


async def test_disconnect_makes_identity_unreachable(server_url):
    async with websockets.connect(server_url) as viewer:
        await send(viewer, type="register", id="Viewer01", role="viewer")
        await expect(viewer, "registered")
        assert (await expect(viewer, "peerList"))['peers'] == []

        async with websockets.connect(server_url) as peer:
            await send(peer, type="register", id="D1", role="peer")
            await expect(peer, "registered")
            assert (await expect(viewer, "peerList"))['peers'] == ["D1"]

        assert (await expect(viewer, "peerList"))['peers'] == []
        await send(viewer, type="relay", to="D1", payload={'candidate': 'x'})
        assert await expect(viewer, "peerOffline") == {'type': 'peerOffline', 'to': 'D1'}


async def test_malformed_frames_do_not_end_the_session(server_url):
    async with websockets.connect(server_url) as ws:
        await ws.send("{not json")
        await ws.send(json.dumps(["register"]))
        await send(ws, type="register", id="Viewer01", role="viewer")
        await expect(ws, "registered")

        await send(ws, type="viewerSelect", viewerId="Viewer01", targetId="Z9")
        assert (await expect(ws, "error"))['message']


def test_parse_args_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    args = parse_args([])
    assert args.host == "0.0.0.0"
    assert args.port == 3000
    assert args.pair is None
    assert not args.notify_partner_offline


def test_parse_args_port_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8765")
    assert parse_args([]).port == 8765


def test_parse_args_pairs():
    args = parse_args(["--pair", "x:y", "--pair", "u:v", "--notify-partner-offline"])
    assert args.pair == ["x:y", "u:v"]
    assert args.notify_partner_offline
