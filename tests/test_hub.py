import asyncio
import contextlib
from collections import namedtuple

import pytest
from aiohttp import WSMsgType

from wetalk.hub import MAX_MESSAGE_SIZE, SEND_BUFFER, Hub, UserClient

Msg = namedtuple("Msg", "type data extra")


class FakeConn:
    def __init__(self, messages=()):
        self.incoming = list(messages)
        self.sent = []
        self.pings = 0
        self.closed = False

    async def receive(self):
        if self.incoming:
            return self.incoming.pop(0)
        return Msg(WSMsgType.CLOSED, None, None)

    async def send_str(self, data):
        self.sent.append(data)

    async def ping(self):
        self.pings += 1

    async def close(self):
        self.closed = True
        return True


@contextlib.asynccontextmanager
async def running(hub):
    task = asyncio.create_task(hub.run())
    try:
        yield task
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


async def settle():
    await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_register_counts_clients():
    hub = Hub()
    async with running(hub):
        await hub.register(UserClient("a", hub, FakeConn()))
        await hub.register(UserClient("b", hub, FakeConn()))
        await settle()
        assert hub.client_count() == 2


@pytest.mark.asyncio
async def test_send_to_client_is_written_then_closed_on_unregister():
    hub = Hub()
    conn = FakeConn()
    client = UserClient("a", hub, conn)
    async with running(hub):
        await hub.register(client)
        await settle()
        hub.send_to_client("a", b'{"message":"hi"}')
        hub.send_to_client("a", "second")
        await hub.unregister(client)
        await settle()
        await asyncio.wait_for(client.write_pump(), 1)
    assert conn.sent == ['{"message":"hi"}', "second"]
    assert conn.closed is True
    assert hub.client_count() == 0


@pytest.mark.asyncio
async def test_send_to_unknown_client_is_dropped():
    hub = Hub()
    conn = FakeConn()
    client = UserClient("a", hub, conn)
    async with running(hub):
        await hub.register(client)
        await settle()
        hub.send_to_client("b", b"nope")
        await hub.unregister(client)
        await settle()
        await asyncio.wait_for(client.write_pump(), 1)
    assert conn.sent == []


@pytest.mark.asyncio
async def test_broadcast_reaches_every_client():
    hub = Hub()
    conns = [FakeConn(), FakeConn()]
    clients = [UserClient(name, hub, c) for name, c in zip("ab", conns)]
    async with running(hub):
        for client in clients:
            await hub.register(client)
        await hub.broadcast(b"all")
        for client in clients:
            await hub.unregister(client)
        await settle()
        for client in clients:
            await asyncio.wait_for(client.write_pump(), 1)
    assert [c.sent for c in conns] == [["all"], ["all"]]


@pytest.mark.asyncio
async def test_full_buffer_drops_extra_messages():
    hub = Hub()
    conn = FakeConn()
    client = UserClient("a", hub, conn)
    async with running(hub):
        await hub.register(client)
        await settle()
        for n in range(SEND_BUFFER + 1):
            hub.send_to_client("a", str(n))
        await hub.unregister(client)
        await settle()
        await asyncio.wait_for(client.write_pump(), 1)
    assert len(conn.sent) == SEND_BUFFER
    assert conn.sent[-1] == str(SEND_BUFFER - 1)


@pytest.mark.asyncio
async def test_broadcast_to_full_client_removes_it():
    hub = Hub()
    client = UserClient("a", hub, FakeConn())
    async with running(hub):
        await hub.register(client)
        await settle()
        for n in range(SEND_BUFFER):
            hub.send_to_client("a", str(n))
        await hub.broadcast(b"overflow")
        await settle()
        assert hub.client_count() == 0


@pytest.mark.asyncio
async def test_unregister_calls_callback():
    seen = []
    hub = Hub(on_client_unregister=lambda c: seen.append(c.user_id))
    client = UserClient("a", hub, FakeConn())
    async with running(hub):
        await hub.register(client)
        await hub.unregister(client)
        await settle()
    assert seen == ["a"]
    assert hub.client_count() == 0


@pytest.mark.asyncio
async def test_callback_error_does_not_stop_hub():
    async def failing(client):
        raise RuntimeError("boom")

    hub = Hub(on_client_unregister=failing)
    first = UserClient("a", hub, FakeConn())
    async with running(hub) as task:
        await hub.register(first)
        await hub.unregister(first)
        await hub.register(UserClient("b", hub, FakeConn()))
        await settle()
        assert not task.done()
        assert hub.client_count() == 1


@pytest.mark.asyncio
async def test_read_pump_passes_messages_and_unregisters():
    received = []
    hub = Hub()
    conn = FakeConn(
        [
            Msg(WSMsgType.TEXT, '{"chatId":"c1"}', None),
            Msg(WSMsgType.BINARY, b"raw", None),
            Msg(WSMsgType.CLOSE, 1000, None),
            Msg(WSMsgType.TEXT, "after close", None),
        ]
    )
    client = UserClient("a", hub, conn)

    async def handler(data):
        received.append(data)

    async with running(hub):
        await hub.register(client)
        await settle()
        await client.read_pump(handler)
        await settle()
        assert hub.client_count() == 0
    assert received == [b'{"chatId":"c1"}', b"raw"]
    assert conn.closed is True


@pytest.mark.asyncio
async def test_read_pump_stops_on_oversized_message():
    received = []
    hub = Hub()
    conn = FakeConn(
        [
            Msg(WSMsgType.TEXT, "x" * (MAX_MESSAGE_SIZE + 1), None),
            Msg(WSMsgType.TEXT, "small", None),
        ]
    )
    client = UserClient("a", hub, conn)
    async with running(hub):
        await client.read_pump(received.append)
    assert received == []
    assert conn.incoming == [Msg(WSMsgType.TEXT, "small", None)]
    assert conn.closed is True