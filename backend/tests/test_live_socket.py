"""ChatClient against the full ASGI app served by uvicorn over a real Socket.IO connection."""

import asyncio
import socket
from contextlib import asynccontextmanager

import pytest
import uvicorn

from chatrelay.client import ChatClient, SendOutcome
from chatrelay.fastapi_app import create_app
from chatrelay.setup.ioc.container import AppProvider

from conftest import Settings, make_token


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@asynccontextmanager
async def serving(app):
    port = _free_port()
    server = uvicorn.Server(
        uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning", lifespan="on")
    )
    task = asyncio.create_task(server.serve())
    try:
        for _ in range(100):
            if server.started:
                break
            await asyncio.sleep(0.05)
        assert server.started, "uvicorn did not start"
        yield f"http://127.0.0.1:{port}"
    finally:
        server.should_exit = True
        await task


async def eventually(check, timeout=5.0):
    for _ in range(int(timeout / 0.05)):
        if check():
            return
        await asyncio.sleep(0.05)
    assert check()


def _bodies(client, conversation_id):
    return [m.body for m in client.timeline(conversation_id).messages]


@pytest.mark.asyncio
async def test_send_and_delete_reach_the_other_participant(store, conversation, alice, bob):
    app = create_app(AppProvider(settings=Settings, store=store))
    cid = conversation.id.value
    list_changes = []

    async def on_list_changed(conversation_id):
        list_changes.append(conversation_id)

    async with serving(app) as url:
        sender = ChatClient(url, make_token(alice), alice.id.value, user_name="Alice", ack_timeout=5.0)
        peer = ChatClient(
            url, make_token(bob), bob.id.value, ack_timeout=5.0, on_list_changed=on_list_changed
        )
        await sender.connect()
        await peer.connect()
        try:
            await sender.open_conversation(cid)
            await peer.open_conversation(cid)

            result = await sender.send(cid, "hello")

            assert result.outcome == SendOutcome.SENT
            assert _bodies(sender, cid) == ["hello"]
            await eventually(lambda: _bodies(peer, cid) == ["hello"])
            await eventually(lambda: list_changes == [cid])
            assert peer.timeline(cid).messages[0].id == result.message.id

            ack = await sender.delete(cid, result.message.id)

            assert ack["ok"] is True
            assert _bodies(sender, cid) == []
            await eventually(lambda: _bodies(peer, cid) == [])
        finally:
            await sender.disconnect()
            await peer.disconnect()

    assert (await store.find_latest_message(conversation.id)) is None
