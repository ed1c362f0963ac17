"""Cache factory.

Provides get_cache() / set_cache() to swap implementations:
- RedisCache when ``REDIS_URL`` is configured
- MemoryCache otherwise (and in tests)
"""

from ordering.cache.port import Cache
from ordering.config import get_settings

_current_cache: Cache | None = None


def get_cache() -> Cache:
    global _current_cache
    if _current_cache is None:
        settings = get_settings()
        if settings.redis_url:
            from ordering.cache.redis_adapter import RedisCache

            _current_cache = RedisCache(url=settings.redis_url, default_ttl=settings.catalog_cache_ttl)
        else:
            from ordering.cache.memory import MemoryCache

            _current_cache = MemoryCache(
                max_entries=settings.cache_max_entries,
                default_ttl=settings.catalog_cache_ttl,
            )
    return _current_cache


def set_cache(cache: Cache) -> None:
    global _current_cache
    _current_cache = cache


def reset_cache() -> None:
    global _current_cache
    _current_cache = None
