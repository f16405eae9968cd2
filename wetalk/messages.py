"""JSON messages exchanged with websocket clients."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Union

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _field(payload: Mapping[str, Any], key: str, kind: type, default: Any) -> Any:
    value = payload.get(key)
    if value is None:
        return default
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"field {key!r} must be an integer")
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise ValueError(f"field {key!r} is out of range")
        return value
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be a {kind.__name__}")
    return value


@dataclass(frozen=True)
class IncomingMessage:
    """A chat message sent by a connected client."""

    message: str = ""
    chat_id: str = ""
    timestamp: int = 0

    @classmethod
    def from_json(cls, data: Union[bytes, str]) -> IncomingMessage:
        """Parse a message; raise ValueError if it is not valid JSON of this shape."""
        try:
            payload = json.loads(data)
        except ValueError as exc:
            raise ValueError(f"invalid message: {exc}") from exc
        if payload is None:
            return cls()
        if not isinstance(payload, dict):
            raise ValueError("message must be a JSON object")
        return cls(
            message=_field(payload, "message", str, ""),
            chat_id=_field(payload, "chatId", str, ""),
            timestamp=_field(payload, "timestamp", int, 0),
        )


@dataclass(frozen=True)
class OutgoingMessage:
    """A chat message delivered to a recipient."""

    user_id: str = ""
    user_name: str = ""
    message: str = ""
    timestamp: int = 0

    def to_json(self) -> bytes:
        """Encode as compact UTF-8 JSON; the sender id travels under ``chatId``."""
        fields = asdict(self)
        payload = {
            "chatId": fields["user_id"],
            "userName": fields["user_name"],
            "message": fields["message"],
            "timestamp": fields["timestamp"],
        }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode(
            "utf-8"
        )