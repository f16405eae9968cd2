"""HTTP endpoints for chats and the application's route table."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from aiohttp import web

log = logging.getLogger(__name__)


def _respond(status: int, message: str, data: Any = None) -> web.Response:
    body = json.dumps({"message": message, "data": data}) + "\n"
    return web.Response(status=status, text=body, content_type="application/json")


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError("userIds must be a list of strings")
    return value


class HttpHandler:
    """Chat endpoints backed by the chat use case."""

    def __init__(self, chat_uc: Any) -> None:
        self._chat_uc = chat_uc

    async def create_chat(self, request: web.Request) -> web.Response:
        """POST /chat: create a chat from ``name`` and ``userIds``."""
        try:
            body = json.loads(await request.text())
            if body is None:
                body = {}
            if not isinstance(body, dict):
                raise ValueError("request body must be a JSON object")
            name = body.get("name") or ""
            if not isinstance(name, str):
                raise ValueError("name must be a string")
            user_ids = _string_list(body.get("userIds"))
        except ValueError:
            return _respond(400, "invalid request body")

        try:
            chat_id = await asyncio.to_thread(self._chat_uc.create, name, user_ids)
        except Exception as exc:
            log.error("Create chat error: %s", exc)
            return _respond(500, "internal server error")

        return _respond(200, "success", {"chatId": chat_id})

    async def list_chat(self, request: web.Request) -> web.Response:
        """GET /user/{id}/chat: list chats for the user named by the ``id`` query."""
        user_id = request.query.get("id", "")
        try:
            chats = await asyncio.to_thread(self._chat_uc.index, user_id)
        except Exception as exc:
            log.error("List chat error: %s", exc)
            return _respond(500, "internal server error")
        return _respond(200, "success", [chat.to_json() for chat in chats])


def map_routes(
    app: web.Application, http_handler: HttpHandler, websocket_handler: Any
) -> None:
    """Attach the websocket, chat and user routes to ``app``."""
    app.router.add_route("*", "/ws/{userId}", websocket_handler.handle_websocket)
    app.router.add_post("/chat", http_handler.create_chat)
    app.router.add_post("/chat/", http_handler.create_chat)
    app.router.add_get("/user/{id}/chat", http_handler.list_chat)