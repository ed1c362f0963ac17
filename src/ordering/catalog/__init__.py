"""Product catalog factory.

Provides get_catalog() / set_catalog() to swap implementations. The default
is an empty InMemoryCatalog behind the read-through cache.
"""

from ordering.cache import get_cache
from ordering.catalog.port import ProductCatalog
from ordering.config import get_settings

_current_catalog: ProductCatalog | None = None


def get_catalog() -> ProductCatalog:
    global _current_catalog
    if _current_catalog is None:
        from ordering.catalog.cached import CachedCatalog
        from ordering.catalog.fake_adapter import InMemoryCatalog

        _current_catalog = CachedCatalog(InMemoryCatalog(), get_cache(), ttl=get_settings().catalog_cache_ttl)
    return _current_catalog


def set_catalog(catalog: ProductCatalog) -> None:
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None
