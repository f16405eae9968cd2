"""Domain entities stored in MongoDB and exchanged as JSON."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class Chat:
    """A chat room."""

    id: str = ""
    name: str = ""

    def to_document(self) -> dict[str, Any]:
        return {"_id": self.id, "name": self.name}

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Chat:
        return cls(id=document.get("_id", ""), name=document.get("name", ""))

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class ChatParticipant:
    """Membership of one user in one chat."""

    chat_id: str = ""
    user_id: str = ""

    def to_document(self) -> dict[str, Any]:
        return {"chatId": self.chat_id, "userId": self.user_id}

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> ChatParticipant:
        return cls(
            chat_id=document.get("chatId", ""),
            user_id=document.get("userId", ""),
        )

    def to_json(self) -> dict[str, Any]:
        return {"chatId": self.chat_id, "userId": self.user_id}


@dataclass
class User:
    """A chat user and their presence."""

    id: str = ""
    name: str = ""
    is_online: bool = False

    def to_document(self) -> dict[str, Any]:
        return {"_id": self.id, "name": self.name, "isOnline": self.is_online}

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> User:
        return cls(
            id=document.get("_id", ""),
            name=document.get("name", ""),
            is_online=bool(document.get("isOnline", False)),
        )

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "isOnline": self.is_online}


@dataclass
class UserIndexFilter:
    """Restricts a user listing to the given ids; empty means all users."""

    ids: list[str] = field(default_factory=list)