"""A thread-safe in-memory key/value cache with optional expiry."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Iterator

_MISSING = object()


class NotIntegerError(TypeError):
    """Raised when incrementing a value that is not an integer."""

    def __init__(self, key: str) -> None:
        super().__init__(f"value at {key!r} is not an integer")
        self.key = key


@dataclass
class _Item:
    value: Any
    expires_at: float | None = None

    def expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (time.monotonic() if now is None else now) > self.expires_at


class MemCache:
    """In-memory cache; items may carry a time-to-live in seconds.

    With a positive ``cleanup_interval`` a background thread removes
    expired items periodically until :meth:`close` is called.
    """

    def __init__(self, cleanup_interval: float = 0) -> None:
        self._items: dict[str, _Item] = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        if cleanup_interval > 0:
            self._thread = threading.Thread(
                target=self._cleanup_loop, args=(cleanup_interval,), daemon=True
            )
            self._thread.start()

    def set(self, key: str, value: Any, ttl: float = 0) -> None:
        expires_at = time.monotonic() + ttl if ttl > 0 else None
        with self._lock:
            self._items[key] = _Item(value, expires_at)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return default
            if item.expired():
                del self._items[key]
                return default
            return item.value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def exists(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __contains__(self, key: str) -> bool:
        return self.exists(key)

    def flush(self) -> None:
        with self._lock:
            self._items.clear()

    def close(self) -> None:
        """Stop the cleanup thread, if one is running."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def keys(self) -> list[str]:
        return [key for key, _ in self.items()]

    def items(self) -> Iterator[tuple[str, Any]]:
        """Yield the live (key, value) pairs as of the moment of the call."""
        now = time.monotonic()
        with self._lock:
            snapshot = [
                (key, item.value)
                for key, item in self._items.items()
                if not item.expired(now)
            ]
        yield from snapshot

    def increment(self, key: str, delta: int = 1) -> int:
        """Add ``delta`` to the integer at ``key``, creating it at zero if absent."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                item = _Item(0)
                self._items[key] = item
            if item.expired():
                item.value = 0
                item.expires_at = None
            if item.value is None:
                item.value = delta
                return delta
            if isinstance(item.value, bool) or not isinstance(item.value, int):
                raise NotIntegerError(key)
            item.value += delta
            return item.value

    def decrement(self, key: str, delta: int = 1) -> int:
        return self.increment(key, -delta)

    def __enter__(self) -> MemCache:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _cleanup(self) -> None:
        now = time.monotonic()
        with self._lock:
            for key in [k for k, item in self._items.items() if item.expired(now)]:
                del self._items[key]

    def _cleanup_loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            self._cleanup()