"""Websocket clients and the hub that routes messages between them."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from aiohttp import WSMsgType

log = logging.getLogger(__name__)

WRITE_WAIT = 10.0
PONG_WAIT = 60.0
PING_PERIOD = PONG_WAIT * 9 / 10
MAX_MESSAGE_SIZE = 512
SEND_BUFFER = 256
BROADCAST_BUFFER = 256

Message = Union[bytes, str]
UnregisterCallback = Callable[["UserClient"], Union[None, Awaitable[None]]]

_CLOSING_TYPES = (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED, WSMsgType.ERROR)


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class UserClient:
    """One user's websocket connection with its outgoing message buffer."""

    def __init__(self, user_id: str, hub: Hub, conn: Any) -> None:
        self.user_id = user_id
        self.hub = hub
        self.conn = conn
        self._send: asyncio.Queue[Message | None] = asyncio.Queue()
        self._send_closed = False

    def _deliver(self, message: Message) -> bool:
        """Queue a message without waiting; False if the buffer is full or closed."""
        if self._send_closed or self._send.qsize() >= SEND_BUFFER:
            return False
        self._send.put_nowait(message)
        return True

    def _close_send(self) -> None:
        if not self._send_closed:
            self._send_closed = True
            self._send.put_nowait(None)

    async def read_pump(self, handler: Callable[[bytes], Any]) -> None:
        """Pass every incoming message to ``handler`` until the connection ends."""
        try:
            while True:
                msg = await self.conn.receive()
                if msg.type in _CLOSING_TYPES:
                    if msg.type is WSMsgType.ERROR:
                        log.error("Error: %s", msg.data)
                    break
                if msg.type is WSMsgType.TEXT:
                    data = msg.data.encode("utf-8")
                elif msg.type is WSMsgType.BINARY:
                    data = bytes(msg.data)
                else:
                    continue
                if len(data) > MAX_MESSAGE_SIZE:
                    log.error("Error: message of %d bytes exceeds limit", len(data))
                    break
                await _maybe_await(handler(data))
        except (ConnectionError, asyncio.TimeoutError) as exc:
            log.error("Error: %s", exc)
        finally:
            await self.hub.unregister(self)
            await self.conn.close()

    async def write_pump(self) -> None:
        """Write queued messages and periodic pings until the buffer is closed."""
        loop = asyncio.get_running_loop()
        next_ping = loop.time() + PING_PERIOD
        try:
            while True:
                timeout = max(0.0, next_ping - loop.time())
                try:
                    message = await asyncio.wait_for(self._send.get(), timeout)
                except asyncio.TimeoutError:
                    await asyncio.wait_for(self.conn.ping(), WRITE_WAIT)
                    next_ping = loop.time() + PING_PERIOD
                    continue
                if message is None:
                    return
                text = message.decode("utf-8") if isinstance(message, bytes) else message
                await asyncio.wait_for(self.conn.send_str(text), WRITE_WAIT)
        except (ConnectionError, RuntimeError, asyncio.TimeoutError):
            return
        finally:
            await self.conn.close()


class Hub:
    """Keeps the connected clients by user id and routes messages to them."""

    def __init__(self, on_client_unregister: UnregisterCallback | None = None) -> None:
        self.on_client_unregister = on_client_unregister
        self._clients: dict[str, UserClient] = {}
        self._events: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        self._broadcast_pending = 0

    async def register(self, client: UserClient) -> None:
        await self._events.put(("register", client))

    async def unregister(self, client: UserClient) -> None:
        await self._events.put(("unregister", client))

    async def broadcast(self, message: Message) -> None:
        while self._broadcast_pending >= BROADCAST_BUFFER:
            await asyncio.sleep(0)
        self._broadcast_pending += 1
        await self._events.put(("broadcast", message))

    async def run(self) -> None:
        """Process registrations, departures and broadcasts forever."""
        while True:
            kind, payload = await self._events.get()
            if kind == "register":
                self._on_register(payload)
            elif kind == "unregister":
                await self._on_unregister(payload)
            else:
                self._broadcast_pending -= 1
                self._on_broadcast(payload)

    def _on_register(self, client: UserClient) -> None:
        self._clients[client.user_id] = client
        log.info("%s is connected", client.user_id)

    async def _on_unregister(self, client: UserClient) -> None:
        if client.user_id in self._clients:
            del self._clients[client.user_id]
            client._close_send()
            log.info("%s is disconnected", client.user_id)
        if self.on_client_unregister is not None:
            try:
                await _maybe_await(self.on_client_unregister(client))
            except Exception as exc:  # the hub must keep running
                log.error("OnClientUnregister error: %s", exc)

    def _on_broadcast(self, message: Message) -> None:
        for user_id, client in list(self._clients.items()):
            if not client._deliver(message):
                client._close_send()
                del self._clients[user_id]

    def send_to_client(self, client_id: str, message: Message) -> None:
        """Queue a message for one user if connected; drop it if their buffer is full."""
        client = self._clients.get(client_id)
        if client is not None and not client._deliver(message):
            log.warning("Failed to send to client: %s", client_id)

    def client_count(self) -> int:
        return len(self._clients)