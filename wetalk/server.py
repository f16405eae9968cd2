"""Application wiring and the command that starts the chat server."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Sequence

from aiohttp import web

from wetalk.http_handler import HttpHandler, map_routes
from wetalk.hub import Hub
from wetalk.mongo import MongoStore
from wetalk.repositories import ChatRepository, UserRepository
from wetalk.usecases import ChatUsecase, MessageUsecase, UserUsecase
from wetalk.ws_handler import WebsocketHandler

log = logging.getLogger(__name__)

DEFAULT_URI = "mongodb://localhost:27017"
DEFAULT_DATABASE = "wetalk"
DEFAULT_PORT = 8080


def build_app(db: Any) -> web.Application:
    """Wire repositories, use cases, the hub and routes around ``db``."""
    user_repo = UserRepository(db)
    chat_repo = ChatRepository(db)

    user_uc = UserUsecase(user_repo)
    message_uc = MessageUsecase(user_repo)
    chat_uc = ChatUsecase(chat_repo, user_repo)

    http_handler = HttpHandler(chat_uc)

    async def on_client_unregister(client: Any) -> None:
        await asyncio.to_thread(user_uc.handle_unregister_client, client.user_id)

    hub = Hub(on_client_unregister)
    websocket_handler = WebsocketHandler(hub, user_uc, message_uc, chat_uc)

    async def run_hub(_app: web.Application) -> AsyncIterator[None]:
        log.info("Websocket is running")
        task = asyncio.create_task(hub.run())
        yield
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    app = web.Application()
    app.cleanup_ctx.append(run_hub)
    map_routes(app, http_handler, websocket_handler)
    return app


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="wetalk", description="Run the chat server.")
    parser.add_argument("--host", default=None, help="interface to bind (default: all)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--mongo-uri", default=DEFAULT_URI)
    parser.add_argument("--database", default=DEFAULT_DATABASE)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    store = MongoStore.connect(args.mongo_uri, args.database)
    log.info("Connected to MongoDB")
    try:
        app = build_app(store.db)
        log.info("HTTP server is running on :%d", args.port)
        web.run_app(app, host=args.host, port=args.port, print=None)
    finally:
        store.close()


if __name__ == "__main__":
    main()