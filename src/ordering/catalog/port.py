"""Product catalog port (abstract interface).

The catalog is owned by another service. The ordering context only reads
product prices, activity flags and stock levels, and reserves stock while an
order is open.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field


@dataclass
class VariantRecord:
    id: str
    sku: str
    price: float
    name: str | None = None
    is_active: bool = True
    quantity: int = 0


@dataclass
class ProductRecord:
    id: str
    name: str
    sku: str
    price: float
    is_active: bool = True
    image: str | None = None
    track_quantity: bool = True
    quantity: int = 0
    allow_backorder: bool = False
    variants: list[VariantRecord] = field(default_factory=list)

    def variant(self, variant_id) -> VariantRecord | None:
        if variant_id is None:
            return None
        return next((v for v in self.variants if str(v.id) == str(variant_id)), None)

    def available_quantity(self, variant_id=None) -> int:
        variant = self.variant(variant_id)
        return variant.quantity if variant is not None else self.quantity

    def can_supply(self, quantity: int, variant_id=None) -> bool:
        if not self.track_quantity or self.allow_backorder:
            return True
        return self.available_quantity(variant_id) >= quantity

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ProductRecord":
        variants = [VariantRecord(**v) for v in data.get("variants", [])]
        return cls(**{**data, "variants": variants})


@dataclass(frozen=True)
class StockLine:
    product_id: str
    quantity: int
    variant_id: str | None = None


class ProductCatalog(ABC):
    @abstractmethod
    def find_product(self, product_id: str) -> ProductRecord | None:
        """Return the product, or None when it does not exist."""
        ...

    @abstractmethod
    def reserve_stock(self, lines: list[StockLine]) -> None:
        """Decrement stock for every line, or raise ValidationError without changing anything."""
        ...

    @abstractmethod
    def release_stock(self, lines: list[StockLine]) -> None:
        """Return previously reserved stock."""
        ...
