from __future__ import annotations

import json
import logging
from typing import Any, Callable, List, TypeVar

from ..data.cache_store import CacheStore
from ..errors import CacheError
from ..models.data_models import ScoredCandidate

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_KEY_PREFIX = "recommendations:user:"


def serialize_candidates(candidates: List[ScoredCandidate]) -> str:
    return json.dumps([c.to_dict() for c in candidates], ensure_ascii=False)


def deserialize_candidates(payload: str) -> List[ScoredCandidate]:
    return [ScoredCandidate.from_dict(item) for item in json.loads(payload)]


class RecommendationCache:
    """
    Read-through cache in front of a CacheStore.

    Store failures never reach the caller: a failed read is a miss and a
    failed write is logged and dropped.
    """

    def __init__(self, store: CacheStore):
        self.store = store

    @staticmethod
    def user_key(user_id: str) -> str:
        return f"{USER_KEY_PREFIX}{user_id}"

    def get_or_compute(
        self,
        key: str,
        ttl_seconds: int,
        compute_fn: Callable[[], T],
        serialize: Callable[[T], str] = json.dumps,
        deserialize: Callable[[str], T] = json.loads,
        should_cache: Callable[[T], bool] = lambda value: True,
    ) -> T:
        cached = self._read(key)
        if cached is not None:
            try:
                value = deserialize(cached)
                logger.debug(f"[Cache] hit {key}")
                return value
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"[Cache] undecodable payload under {key}, recomputing: {e}")

        logger.debug(f"[Cache] miss {key}")
        value = compute_fn()
        if should_cache(value):
            self._write(key, serialize(value), ttl_seconds)
        return value

    def _read(self, key: str) -> Any:
        try:
            return self.store.get(key)
        except CacheError as e:
            logger.warning(f"[Cache] read failed for {key}, treating as miss: {e}")
            return None

    def _write(self, key: str, payload: str, ttl_seconds: int) -> None:
        try:
            self.store.set_with_ttl(key, payload, ttl_seconds)
        except CacheError as e:
            logger.warning(f"[Cache] write failed for {key}, result not cached: {e}")

    def clear_user(self, user_id: str) -> None:
        key = self.user_key(user_id)
        try:
            self.store.delete(key)
            logger.info(f"[Cache] cleared {key}")
        except CacheError as e:
            logger.warning(f"[Cache] delete failed for {key}: {e}")
