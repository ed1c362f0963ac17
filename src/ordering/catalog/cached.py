"""Read-through caching decorator for a product catalog.

Product lookups are served from the cache when possible. Stock changes
invalidate the affected products. A cache failure is logged and the lookup
goes straight to the wrapped catalog.
"""

import structlog

from ordering.cache.port import Cache
from ordering.catalog.port import ProductCatalog, ProductRecord, StockLine

logger = structlog.get_logger(__name__)

KEY_PREFIX = "product:"


class CachedCatalog(ProductCatalog):
    def __init__(self, catalog: ProductCatalog, cache: Cache, ttl: int = 300) -> None:
        self.catalog = catalog
        self.cache = cache
        self.ttl = ttl

    @staticmethod
    def key_for(product_id) -> str:
        return f"{KEY_PREFIX}{product_id}"

    def find_product(self, product_id: str) -> ProductRecord | None:
        key = self.key_for(product_id)
        try:
            cached = self.cache.get(key)
        except Exception as exc:
            logger.warning("catalog_cache_read_failed", product_id=str(product_id), error=str(exc))
            cached = None

        if cached is not None:
            return ProductRecord.from_dict(cached)

        product = self.catalog.find_product(product_id)
        if product is not None:
            try:
                self.cache.set(key, product.to_dict(), ttl=self.ttl)
            except Exception as exc:
                logger.warning("catalog_cache_write_failed", product_id=str(product_id), error=str(exc))
        return product

    def reserve_stock(self, lines: list[StockLine]) -> None:
        self.catalog.reserve_stock(lines)
        self._invalidate(lines)

    def release_stock(self, lines: list[StockLine]) -> None:
        self.catalog.release_stock(lines)
        self._invalidate(lines)

    def invalidate_all(self) -> int:
        return self.cache.clear_by_prefix(KEY_PREFIX)

    def _invalidate(self, lines: list[StockLine]) -> None:
        for product_id in {str(line.product_id) for line in lines}:
            try:
                self.cache.delete(self.key_for(product_id))
            except Exception as exc:
                logger.warning("catalog_cache_invalidate_failed", product_id=product_id, error=str(exc))
