"""MongoDB-backed repositories for chats and users."""

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Any, Iterable

from wetalk.entities import Chat, ChatParticipant, User, UserIndexFilter

CHATS = "chats"
CHAT_PARTICIPANTS = "chat_participants"
USERS = "users"


class NotFoundError(LookupError):
    """Raised when a requested document does not exist."""


class ChatRepository:
    """Stores chats and their participants."""

    def __init__(self, db: Any) -> None:
        self._db = db

    def index(self, user_id: str) -> list[Chat]:
        pipeline = [
            {"$match": {"userId": user_id}},
            {
                "$lookup": {
                    "from": CHAT_PARTICIPANTS,
                    "localField": "_id",
                    "foreignField": "chatId",
                    "as": "participants",
                }
            },
        ]
        return [Chat.from_document(doc) for doc in self._db[CHATS].aggregate(pipeline)]

    def get(self, chat_id: str) -> Chat:
        document = self._db[CHATS].find_one({"_id": chat_id})
        if document is None:
            raise NotFoundError(f"chat {chat_id!r} not found")
        return Chat.from_document(document)

    def create(self, chat: Chat) -> str:
        self._db[CHATS].insert_one(chat.to_document())
        return chat.id

    def add_participants(self, participants: Iterable[ChatParticipant]) -> None:
        documents = [participant.to_document() for participant in participants]
        if not documents:
            raise ValueError("no participants to add")
        self._db[CHAT_PARTICIPANTS].insert_many(documents)

    def get_participants(self, chat_id: str) -> list[ChatParticipant]:
        cursor = self._db[CHAT_PARTICIPANTS].find({"chatId": chat_id})
        return [ChatParticipant.from_document(doc) for doc in cursor]

    def delete(self, chat_id: str) -> None:
        self._db[CHATS].delete_one({"_id": chat_id})


class UserRepository:
    """Stores users and their online state."""

    def __init__(self, db: Any) -> None:
        self._db = db

    def index(self, user_filter: UserIndexFilter | None = None) -> list[User]:
        query: dict[str, Any] = {}
        if user_filter is not None and user_filter.ids:
            query = {"_id": {"$in": list(user_filter.ids)}}
        return [User.from_document(doc) for doc in self._db[USERS].find(query)]

    def get(self, user_id: str) -> User:
        document = self._db[USERS].find_one({"_id": user_id})
        if document is None:
            raise NotFoundError(f"user {user_id!r} not found")
        return User.from_document(document)

    def create(self, user: User) -> str:
        """Insert the user under a freshly generated id and return that id."""
        stored = replace(user, id=str(uuid.uuid4()))
        self._db[USERS].insert_one(stored.to_document())
        return stored.id

    def update(self, user: User) -> None:
        self._db[USERS].update_one(
            {"_id": user.id},
            {"$set": {"name": user.name, "isOnline": user.is_online}},
        )

    def get_online_users(self, user_ids: Iterable[str] | None = None) -> list[User]:
        query: dict[str, Any] = {"isOnline": True}
        ids = list(user_ids or [])
        if ids:
            query["_id"] = {"$in": ids}
        return [User.from_document(doc) for doc in self._db[USERS].find(query)]