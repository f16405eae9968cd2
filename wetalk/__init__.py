"""Chat server on aiohttp with WebSocket delivery, MongoDB storage and an in-memory cache."""

__version__ = "0.1.0"

__all__ = ["__version__"]