"""Redis-backed cache, including entries valid for a time interval."""

import json
from dataclasses import dataclass
from datetime import timedelta

import redis

from watchmarket.cache import CacheProvider, generate_key
from watchmarket.models import duration_to_unix
from watchmarket.redis_store import KeyNotFoundError, RedisStore


class CacheError(Exception):
    """Raised when a cache entry cannot be stored or served."""


@dataclass
class CachedInterval:
    timestamp: int
    duration: int
    key: str

    def to_dict(self) -> dict:
        return {"Timestamp": self.timestamp, "Duration": self.duration, "Key": self.key}

    @classmethod
    def from_dict(cls, data: dict) -> "CachedInterval":
        return cls(
            timestamp=int(data.get("Timestamp", 0)),
            duration=int(data.get("Duration", 0)),
            key=data.get("Key", ""),
        )

    def covers(self, timestamp: int) -> bool:
        return self.timestamp <= timestamp <= self.timestamp + self.duration


def _load_intervals(raw: bytes) -> list[CachedInterval]:
    items = json.loads(raw)
    return [CachedInterval.from_dict(item) for item in items or []]


class RedisCache(CacheProvider):
    """Cache whose entries expire after ``caching_period``."""

    id = "redis"

    def __init__(self, store: RedisStore, caching_period: timedelta):
        self.store = store
        self.caching_period = caching_period

    def generate_key(self, data: str) -> str:
        return generate_key(data)

    def get(self, key: str) -> bytes:
        return self.store.get(key)

    def set(self, key: str, data: bytes) -> None:
        if data is None:
            raise CacheError("data is empty")
        self.store.set(key, data, self.caching_period)

    def get_with_time(self, key: str, timestamp: int) -> bytes:
        """Return the data cached under ``key`` for an interval covering ``timestamp``."""
        data_key = self.interval_key(key, timestamp)
        try:
            return self.store.get(data_key)
        except (KeyNotFoundError, redis.RedisError):
            pass
        try:
            self.store.delete(data_key)
        except redis.RedisError as exc:
            raise CacheError("invalid cache is not deleted") from exc
        raise CacheError("cache is not valid")

    def set_with_time(self, key: str, data: bytes, timestamp: int) -> None:
        """Cache ``data`` for the interval starting at ``timestamp``."""
        if data is None:
            raise CacheError("data is empty")
        caching_key = self.generate_key(key + str(timestamp))
        interval = CachedInterval(
            timestamp=timestamp,
            duration=duration_to_unix(self.caching_period),
            key=caching_key,
        )
        self.update_interval(key, interval)
        self.store.set(caching_key, data, self.caching_period)

    def interval_key(self, key: str, timestamp: int) -> str:
        """Data key of the first interval stored under ``key`` covering ``timestamp``."""
        intervals = _load_intervals(self.store.get(key))
        for interval in intervals:
            if interval.covers(timestamp):
                return interval.key
        raise CacheError("no suitable intervals")

    def update_interval(self, key: str, interval: CachedInterval) -> None:
        """Add ``interval`` under ``key``, dropping intervals that end where it starts."""
        try:
            current = _load_intervals(self.store.get(key))
        except KeyNotFoundError:
            current = []
        kept = [iv for iv in current if iv.timestamp + iv.duration != interval.timestamp]
        kept.append(interval)
        raw = json.dumps([iv.to_dict() for iv in kept], separators=(",", ":"))
        self.store.set(key, raw.encode("utf-8"), self.caching_period)

    def __len__(self) -> int:
        return 0