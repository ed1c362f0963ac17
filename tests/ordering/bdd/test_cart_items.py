"""BDD tests for cart item management."""

from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddToCart, UpdateCartQuantity
from ordering.errors import OrderingError

scenarios("features/cart_items.feature")


def load_cart(customer_id):
    return current_domain.repository_for(ShoppingCart).for_customer(customer_id)


def attempt(error, command):
    try:
        current_domain.process(command, asynchronous=False)
    except (ValidationError, OrderingError) as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('{qty:d} of product "{product_id}" are added to the cart'))
@when(parsers.cfparse('{qty:d} of product "{product_id}" are added to the cart'))
def add_to_cart(customer_id, qty, product_id, error):
    attempt(error, AddToCart(customer_id=customer_id, product_id=product_id, quantity=qty))


@when(parsers.cfparse('product "{product_id}" in variant "{variant_id}" is added to the cart'))
def add_variant_to_cart(customer_id, product_id, variant_id, error):
    attempt(error, AddToCart(customer_id=customer_id, product_id=product_id, variant_id=variant_id, quantity=1))


@when(parsers.cfparse('the quantity of "{product_id}" is set to {qty:d}'))
def set_quantity(customer_id, product_id, qty, error):
    attempt(error, UpdateCartQuantity(customer_id=customer_id, product_id=product_id, quantity=qty))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart has {count:d} line"))
def cart_has_n_lines_singular(customer_id, count):
    assert len(load_cart(customer_id).items) == count


@then(parsers.cfparse("the cart has {count:d} lines"))
def cart_has_n_lines(customer_id, count):
    assert len(load_cart(customer_id).items) == count


@then(parsers.cfparse('the cart line for "{product_id}" has quantity {qty:d}'))
def cart_line_quantity(customer_id, product_id, qty):
    assert load_cart(customer_id).find_line(product_id).quantity == qty


@then(parsers.cfparse("the cart subtotal is {amount:f}"))
def cart_subtotal(customer_id, amount):
    assert load_cart(customer_id).subtotal == amount


@then(parsers.cfparse("the cart shipping is {amount:f}"))
def cart_shipping(customer_id, amount):
    assert load_cart(customer_id).shipping == amount


@then(parsers.cfparse("the cart total is {amount:f}"))
def cart_total(customer_id, amount):
    assert load_cart(customer_id).total == amount
