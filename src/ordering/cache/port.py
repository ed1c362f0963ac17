"""Cache port (abstract interface).

The cache is an accelerator, never the system of record. Adapters must not
raise on backend outages: a failed read is a miss and a failed write is
dropped.
"""

from abc import ABC, abstractmethod
from typing import Any


class Cache(ABC):
    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss or expiry."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a JSON-serializable value for ``ttl`` seconds (adapter default when None)."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def clear_by_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``; returns how many were removed."""
        ...
