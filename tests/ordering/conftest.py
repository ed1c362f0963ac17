import json

import pytest
from protean.integrations.pytest import DomainFixture

from ordering.cache import reset_cache, set_cache
from ordering.cache.memory import MemoryCache
from ordering.catalog import reset_catalog, set_catalog
from ordering.catalog.fake_adapter import InMemoryCatalog
from ordering.catalog.port import ProductRecord, VariantRecord
from ordering.config import reset_settings
from ordering.directory import reset_directory, set_directory
from ordering.directory.fake_adapter import InMemoryDirectory
from ordering.directory.port import UserRecord
from ordering.gateway import reset_gateway, set_gateway
from ordering.gateway.fake_adapter import FakeGateway

KEY_ID = "rzp_test_key"
KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"

SHIPPING_ADDRESS = {
    "first_name": "Asha",
    "last_name": "Iyer",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
    "country": "India",
    "phone": "9876543210",
}


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    """Pin the pricing defaults and Razorpay secrets for every test."""
    monkeypatch.setenv("RAZORPAY_KEY_ID", KEY_ID)
    monkeypatch.setenv("RAZORPAY_KEY_SECRET", KEY_SECRET)
    monkeypatch.setenv("RAZORPAY_WEBHOOK_SECRET", WEBHOOK_SECRET)
    for name in ("REDIS_URL", "TAX_RATE", "SHIPPING_FEE", "FREE_SHIPPING_THRESHOLD", "ORDER_NUMBER_PREFIX", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture()
def catalog():
    return InMemoryCatalog(
        [
            ProductRecord(
                id="prod-ring",
                name="Gold Ring",
                sku="RING-001",
                price=2499.0,
                image="https://cdn.example.com/ring.jpg",
                quantity=10,
            ),
            ProductRecord(
                id="prod-necklace",
                name="Diamond Necklace",
                sku="NECK-001",
                price=4999.0,
                quantity=5,
                variants=[
                    VariantRecord(id="var-16", sku="NECK-001-16", price=4999.0, name="16 inch", quantity=3),
                    VariantRecord(id="var-18", sku="NECK-001-18", price=5499.0, name="18 inch", quantity=2),
                    VariantRecord(id="var-20", sku="NECK-001-20", price=5999.0, name="20 inch", is_active=False),
                ],
            ),
            ProductRecord(id="prod-earrings", name="Pearl Earrings", sku="EAR-001", price=1299.0, quantity=1),
            ProductRecord(id="prod-retired", name="Retired Bangle", sku="BNG-001", price=999.0, is_active=False),
        ]
    )


@pytest.fixture()
def directory():
    return InMemoryDirectory(
        [
            UserRecord(id="cust-001", first_name="Asha", last_name="Iyer", email="asha@example.com"),
            UserRecord(id="cust-002", first_name="Ravi", last_name="Menon", email="ravi@example.com"),
            UserRecord(id="admin-001", role="admin", email="admin@example.com"),
            UserRecord(id="cust-inactive", is_active=False),
        ]
    )


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def cache():
    return MemoryCache(max_entries=64, default_ttl=300)


@pytest.fixture(autouse=True)
def adapters(catalog, directory, gateway, cache):
    """Install in-memory collaborators so no test reaches a real service."""
    set_catalog(catalog)
    set_directory(directory)
    set_gateway(gateway)
    set_cache(cache)
    yield
    reset_catalog()
    reset_directory()
    reset_gateway()
    reset_cache()


@pytest.fixture()
def shipping_address():
    return dict(SHIPPING_ADDRESS)


@pytest.fixture()
def place_order():
    """Fill a customer's cart and check it out; returns the persisted order."""
    from protean import current_domain

    from ordering.cart.items import AddToCart
    from ordering.order.creation import PlaceOrder
    from ordering.order.order import Order

    def _place(customer_id="cust-001", lines=(("prod-ring", None, 1),), payment_method="online", notes=None):
        for product_id, variant_id, quantity in lines:
            current_domain.process(
                AddToCart(
                    customer_id=customer_id,
                    product_id=product_id,
                    variant_id=variant_id,
                    quantity=quantity,
                ),
                asynchronous=False,
            )
        order_id = current_domain.process(
            PlaceOrder(
                customer_id=customer_id,
                shipping_address=json.dumps(SHIPPING_ADDRESS),
                payment_method=payment_method,
                notes=notes,
            ),
            asynchronous=False,
        )
        return current_domain.repository_for(Order).get(order_id)

    return _place
