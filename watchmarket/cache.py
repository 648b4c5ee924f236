"""Cache provider interface and an in-process implementation."""

import base64
import hashlib
import threading
from abc import ABC, abstractmethod

from watchmarket.models import NotFoundError


def generate_key(data: str) -> str:
    """URL-safe base64 of the SHA-1 digest of ``data``."""
    digest = hashlib.sha1(data.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")


class CacheProvider(ABC):
    """A store of serialised responses."""

    id: str

    @abstractmethod
    def generate_key(self, data: str) -> str: ...

    @abstractmethod
    def get(self, key: str) -> bytes: ...

    @abstractmethod
    def set(self, key: str, data: bytes) -> None: ...

    @abstractmethod
    def get_with_time(self, key: str, timestamp: int) -> bytes | None: ...

    @abstractmethod
    def set_with_time(self, key: str, data: bytes, timestamp: int) -> None: ...

    @abstractmethod
    def __len__(self) -> int: ...


class MemoryCache(CacheProvider):
    """Thread-safe cache held in memory; entries never expire."""

    id = "memory"

    def __init__(self) -> None:
        self._items: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def generate_key(self, data: str) -> str:
        return generate_key(data)

    def get(self, key: str) -> bytes:
        with self._lock:
            try:
                return self._items[key]
            except KeyError:
                raise NotFoundError() from None

    def set(self, key: str, data: bytes) -> None:
        with self._lock:
            self._items[key] = bytes(data)

    def get_with_time(self, key: str, timestamp: int) -> bytes | None:
        """Timed entries are not kept in memory, so there is never one."""
        return None

    def set_with_time(self, key: str, data: bytes, timestamp: int) -> None:
        """Timed entries are not kept in memory; the data is dropped."""

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)