"""Websocket endpoint: connects users to the hub and relays chat messages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from aiohttp import web

from wetalk.entities import User
from wetalk.hub import UserClient
from wetalk.messages import IncomingMessage, OutgoingMessage

log = logging.getLogger(__name__)


class WebsocketHandler:
    """Serves websocket connections and routes their messages to chat members."""

    def __init__(self, hub: Any, user_uc: Any, message_uc: Any, chat_uc: Any) -> None:
        self._hub = hub
        self._user_uc = user_uc
        self._message_uc = message_uc
        self._chat_uc = chat_uc
        self._writers: set[asyncio.Task] = set()

    async def handle_websocket(self, request: web.Request) -> web.StreamResponse:
        user_id = request.match_info.get("userId", "")
        if not user_id:
            return web.Response(status=400, text="Missing user ID\n")

        try:
            user = await asyncio.to_thread(self._user_uc.get, user_id)
        except Exception as exc:
            log.error("Get user error: %s", exc)
            return web.Response()

        ws = web.WebSocketResponse()
        if not ws.can_prepare(request).ok:
            log.error("Upgrade error: %s", "request is not a websocket handshake")
            return web.Response(status=400, text="Bad Request\n")
        await ws.prepare(request)

        user.is_online = True
        try:
            await asyncio.to_thread(self._user_uc.update, user)
        except Exception as exc:
            log.error("Update user error: %s", exc)
            await ws.close()
            return ws

        client = UserClient(user.id, self._hub, ws)
        await self._hub.register(client)

        writer = asyncio.create_task(client.write_pump())
        self._writers.add(writer)
        writer.add_done_callback(self._writers.discard)

        await client.read_pump(lambda data: self.handle_message(client, data))
        return ws

    async def handle_unregister_client(self, client: Any) -> None:
        """Mark the client's user offline, logging any failure."""
        try:
            user = await asyncio.to_thread(self._user_uc.get, client.user_id)
        except Exception as exc:
            log.error("Get user error: %s", exc)
            return
        user.is_online = False
        try:
            await asyncio.to_thread(self._user_uc.update, user)
        except Exception as exc:
            log.error("HandleUnregisterClient error: %s", exc)

    async def handle_message(self, client: Any, data: bytes) -> list[User] | None:
        """Deliver a message to the chat's online members.

        Returns the participants that were offline, or None when the
        message could not be routed.
        """
        try:
            incoming = IncomingMessage.from_json(data)
        except ValueError as exc:
            log.error("Unknown message: %s", exc)
            return None

        try:
            chat = await asyncio.to_thread(self._chat_uc.get, incoming.chat_id)
        except Exception as exc:
            log.error("Get chat error: %s", exc)
            return None

        try:
            sender = await asyncio.to_thread(self._user_uc.get, client.user_id)
        except Exception as exc:
            log.error("Get sender user error: %s", exc)
            return None

        try:
            participants = await asyncio.to_thread(
                self._chat_uc.get_participants, chat.id
            )
        except Exception as exc:
            log.error("GetParticipants error: %s", exc)
            return None

        if not participants:
            log.info("No participants in chat: %s", chat.id)
            try:
                await asyncio.to_thread(self._chat_uc.delete, chat.id)
            except Exception as exc:
                log.error("Delete chat error: %s", exc)
            return None

        user_ids = [participant.user_id for participant in participants]
        try:
            online_users = await asyncio.to_thread(
                self._user_uc.get_online_users, user_ids
            )
        except Exception as exc:
            log.error("GetOnlineUser error: %s", exc)
            return None
        online = {user.id for user in online_users}

        payload = OutgoingMessage(
            user_id=client.user_id,
            user_name=sender.name,
            message=incoming.message,
            timestamp=incoming.timestamp,
        ).to_json()
        for user_id in user_ids:
            if user_id != client.user_id and user_id in online:
                self._hub.send_to_client(user_id, payload)

        return [User(id=user_id) for user_id in user_ids if user_id not in online]