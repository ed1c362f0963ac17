"""Redis-backed cache adapter.

Values are stored as JSON under a namespaced key. Transient Redis errors are
retried briefly with tenacity; if Redis stays unavailable the operation is
logged and treated as a miss so requests fall back to the primary store.
"""

import json
from typing import Any

import redis
import structlog
from redis.exceptions import RedisError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ordering.cache.port import Cache

logger = structlog.get_logger(__name__)


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        retry=retry_if_exception_type(RedisError),
    )


class RedisCache(Cache):
    def __init__(
        self,
        url: str | None = None,
        client: redis.Redis | None = None,
        default_ttl: int = 300,
        namespace: str = "gemcart:",
    ) -> None:
        self.client = client or redis.Redis.from_url(url, decode_responses=True)
        self.default_ttl = default_ttl
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    @redis_retry()
    def _get(self, key: str):
        return self.client.get(self._key(key))

    @redis_retry()
    def _set(self, key: str, payload: str, ttl: int) -> None:
        self.client.set(self._key(key), payload, ex=ttl)

    @redis_retry()
    def _delete(self, key: str) -> None:
        self.client.delete(self._key(key))

    @redis_retry()
    def _clear_by_prefix(self, prefix: str) -> int:
        removed = 0
        for raw_key in self.client.scan_iter(match=f"{self._key(prefix)}*"):
            removed += self.client.delete(raw_key)
        return removed

    def get(self, key: str) -> Any | None:
        try:
            payload = self._get(key)
        except RedisError as exc:
            logger.warning("cache_get_failed", key=key, error=str(exc))
            return None
        return json.loads(payload) if payload is not None else None

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            self._set(key, json.dumps(value), self.default_ttl if ttl is None else ttl)
        except RedisError as exc:
            logger.warning("cache_set_failed", key=key, error=str(exc))

    def delete(self, key: str) -> None:
        try:
            self._delete(key)
        except RedisError as exc:
            logger.warning("cache_delete_failed", key=key, error=str(exc))

    def clear_by_prefix(self, prefix: str) -> int:
        try:
            return self._clear_by_prefix(prefix)
        except RedisError as exc:
            logger.warning("cache_clear_failed", prefix=prefix, error=str(exc))
            return 0
