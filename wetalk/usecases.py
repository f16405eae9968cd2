"""Application use cases for chats, messages and users."""

from __future__ import annotations

import uuid
from typing import Any, Iterable

from wetalk.entities import Chat, ChatParticipant, User, UserIndexFilter


class InvalidChatError(ValueError):
    """Raised when a chat cannot be created from the given input."""


def _participants(chat_id: str, user_ids: Iterable[str]) -> list[ChatParticipant]:
    return [ChatParticipant(chat_id=chat_id, user_id=user_id) for user_id in user_ids]


class ChatUsecase:
    """Chat operations built on the chat and user repositories."""

    def __init__(self, chat_repo: Any, user_repo: Any) -> None:
        self._chat_repo = chat_repo
        self._user_repo = user_repo

    def index(self, user_id: str) -> list[Chat]:
        return self._chat_repo.index(user_id)

    def get(self, chat_id: str) -> Chat:
        return self._chat_repo.get(chat_id)

    def create(self, name: str, user_ids: Iterable[str]) -> str:
        """Create a chat with the given participants and return its id."""
        ids = list(user_ids or [])
        if not ids:
            raise InvalidChatError("need at least one participant")

        users = self._user_repo.index(UserIndexFilter(ids=ids))
        if len(users) != len(ids):
            raise InvalidChatError("some userIds are invalid")

        chat_id = self._chat_repo.create(Chat(id=str(uuid.uuid4()), name=name))
        self._chat_repo.add_participants(_participants(chat_id, ids))
        return chat_id

    def add_participants(self, chat_id: str, user_ids: Iterable[str]) -> None:
        self._chat_repo.add_participants(_participants(chat_id, user_ids))

    def get_participants(self, chat_id: str) -> list[ChatParticipant]:
        return self._chat_repo.get_participants(chat_id)

    def delete(self, chat_id: str) -> None:
        self._chat_repo.delete(chat_id)


class MessageUsecase:
    """Message routing decisions."""

    def __init__(self, user_repo: Any) -> None:
        self.user_repo = user_repo
        # Direct routes from a sender to its receivers; chat delivery goes
        # through chat participants instead, so no direct routes exist.
        self._routes: dict[str, list[str]] = {}

    def get_receivers(self, user_id: str, message: str) -> list[str]:
        """Return the ids directly routed from the sender, as a new list."""
        return list(self._routes.get(user_id, ()))


class UserUsecase:
    """User operations built on the user repository."""

    def __init__(self, user_repo: Any) -> None:
        self._user_repo = user_repo

    def get(self, user_id: str) -> User:
        return self._user_repo.get(user_id)

    def create(self, name: str) -> str:
        """Create an online user with the given name and return its id."""
        return self._user_repo.create(User(name=name, is_online=True))

    def update(self, user: User) -> None:
        self._user_repo.update(user)

    def get_online_users(self, user_ids: Iterable[str] | None = None) -> list[User]:
        return self._user_repo.get_online_users(user_ids)

    def handle_unregister_client(self, user_id: str) -> str:
        """Mark the user offline and return their id."""
        user = self._user_repo.get(user_id)
        user.is_online = False
        self._user_repo.update(user)
        return user.id