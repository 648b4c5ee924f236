"""Byte storage on a Redis server."""

from datetime import timedelta
from typing import Any

import redis

from watchmarket.models import NotFoundError


class KeyNotFoundError(NotFoundError):
    """Raised when a key is absent from the store."""

    def __init__(self, key: str):
        super().__init__("Not found")
        self.key = key


class RedisStore:
    """Get, set and delete raw values in Redis."""

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def connect(cls, url: str) -> "RedisStore":
        """Open a client for ``url`` and check that the server answers."""
        client = redis.Redis.from_url(url)
        client.ping()
        return cls(client)

    def get(self, key: str) -> bytes:
        value = self._client.get(key)
        if value is None:
            raise KeyNotFoundError(key)
        return bytes(value)

    def set(self, key: str, value: bytes, expiration: timedelta) -> None:
        """Store ``value`` under ``key``; a zero ``expiration`` keeps it forever."""
        options: dict[str, int] = {}
        if expiration > timedelta(0):
            if expiration % timedelta(seconds=1) == timedelta(0):
                options["ex"] = int(expiration.total_seconds())
            else:
                options["px"] = expiration // timedelta(milliseconds=1)
        self._client.set(key, value, **options)

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def is_available(self) -> bool:
        try:
            self._client.ping()
        except redis.RedisError:
            return False
        return True

    def reconnect(self, url: str) -> bool:
        """Replace the client with a fresh one for ``url``; report success."""
        try:
            client = redis.Redis.from_url(url)
            client.ping()
        except (ValueError, redis.RedisError):
            return False
        self._client = client
        return True