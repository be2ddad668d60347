from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import redis

from ..config import REDIS_URL
from ..errors import CacheError

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Key/value store with per-key time-to-live. Values are text."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class RedisCacheStore(CacheStore):
    def __init__(self, client: Optional[redis.Redis] = None, url: Optional[str] = None):
        if client is None:
            client = redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.client = client

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            raise CacheError(f"redis get failed for {key}: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.client.setex(key, ttl_seconds, value)
        except redis.RedisError as e:
            raise CacheError(f"redis setex failed for {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            raise CacheError(f"redis delete failed for {key}: {e}") from e


class InMemoryCacheStore(CacheStore):
    """Process-local TTL dict. Expired entries are dropped on read."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._data: Dict[str, Tuple[float, str]] = {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._data[key]
                return None
            return value

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._data[key] = (self._clock() + ttl_seconds, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
