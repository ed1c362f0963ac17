"""Shared BDD fixtures and step definitions for the Ordering domain."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddToCart
from ordering.cart.management import OpenCart
from ordering.errors import OrderingError
from ordering.order.creation import PlaceOrder
from ordering.order.management import UpdateOrderStatus
from ordering.order.order import Order

ADDRESS = {
    "first_name": "Asha",
    "last_name": "Iyer",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
    "phone": "9876543210",
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    return {"exc": None}


def load_order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def load_cart(customer_id) -> ShoppingCart | None:
    return current_domain.repository_for(ShoppingCart).for_customer(customer_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('customer "{customer_id}" has an empty cart'), target_fixture="customer_id")
def _(customer_id):
    current_domain.process(OpenCart(customer_id=customer_id), asynchronous=False)
    return customer_id


@given(
    parsers.cfparse('customer "{customer_id}" placed an order for {qty:d} of product "{product_id}"'),
    target_fixture="order_id",
)
def _(customer_id, qty, product_id):
    current_domain.process(
        AddToCart(customer_id=customer_id, product_id=product_id, quantity=qty),
        asynchronous=False,
    )
    return current_domain.process(
        PlaceOrder(customer_id=customer_id, shipping_address=json.dumps(ADDRESS), payment_method="online"),
        asynchronous=False,
    )


@given(parsers.cfparse('the order was moved to "{status}"'))
def _(order_id, status):
    current_domain.process(
        UpdateOrderStatus(order_id=order_id, status=status, updated_by="admin-001"),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps: Order
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert load_order(order_id).status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(order_id, status):
    assert load_order(order_id).payment_status == status


@then(parsers.cfparse('the latest timeline note is "{note}"'))
def _(order_id, note):
    assert load_order(order_id).ordered_timeline[-1].note == note


@then(parsers.cfparse('the timeline has {count:d} "{status}" entry'))
def _(order_id, count, status):
    entries = [e for e in load_order(order_id).timeline if e.status == status]
    assert len(entries) == count


@then(parsers.cfparse('the order action fails with "{message}"'))
def _(error, message):
    assert error["exc"] is not None, "Expected the action to fail"
    assert isinstance(error["exc"], OrderingError)
    assert error["exc"].message == message


@then(parsers.cfparse('product "{product_id}" has {qty:d} units in stock'))
def _(catalog, product_id, qty):
    assert catalog.products[product_id].quantity == qty


# ---------------------------------------------------------------------------
# Then steps: Cart
# ---------------------------------------------------------------------------
@then("the cart action fails with a validation error")
def _(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('the cart of "{customer_id}" is empty'))
def _(customer_id):
    assert load_cart(customer_id).items == []
