"""In-memory product catalog for development and testing."""

from protean.exceptions import ValidationError

from ordering.catalog.port import ProductCatalog, ProductRecord, StockLine


class InMemoryCatalog(ProductCatalog):
    def __init__(self, products: list[ProductRecord] | None = None) -> None:
        self.products: dict[str, ProductRecord] = {}
        self.calls: list[dict] = []
        for product in products or []:
            self.add_product(product)

    def add_product(self, product: ProductRecord) -> ProductRecord:
        self.products[str(product.id)] = product
        return product

    def find_product(self, product_id: str) -> ProductRecord | None:
        self.calls.append({"method": "find_product", "product_id": str(product_id)})
        return self.products.get(str(product_id))

    def reserve_stock(self, lines: list[StockLine]) -> None:
        self.calls.append({"method": "reserve_stock", "lines": list(lines)})

        shortages = []
        for line in lines:
            product = self.products.get(str(line.product_id))
            if product is None:
                shortages.append(f"Product {line.product_id} is no longer available")
            elif not product.can_supply(line.quantity, line.variant_id):
                shortages.append(f"Insufficient stock for {product.name}")
        if shortages:
            raise ValidationError({"stock": shortages})

        for line in lines:
            self._adjust(line, -line.quantity)

    def release_stock(self, lines: list[StockLine]) -> None:
        self.calls.append({"method": "release_stock", "lines": list(lines)})
        for line in lines:
            self._adjust(line, line.quantity)

    def _adjust(self, line: StockLine, delta: int) -> None:
        product = self.products.get(str(line.product_id))
        if product is None or not product.track_quantity:
            return
        variant = product.variant(line.variant_id)
        if variant is not None:
            variant.quantity += delta
        else:
            product.quantity += delta
