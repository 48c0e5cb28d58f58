"""Shared BDD fixtures and step definitions for the ordering domain."""

import pytest
from pytest_bdd import given, parsers

# Product names used in feature files, mapped to ordering fixtures
PRODUCT_FIXTURES = {
    "Compact": "compact",
    "Long Edge": "long_edge",
    "STL": "stl_file",
}


@pytest.fixture()
def orders():
    """Orders placed by Given steps, keyed by production number."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a cart with {quantity:d} "{name}" {kind}'))
def cart_with(request, cart, quantity, name, kind):
    cart.add_item(request.getfixturevalue(PRODUCT_FIXTURES[name]), quantity)


@given(parsers.cfparse('order {number:d} is "{status}"'))
def order_in_status(orders, order_factory, number, status):
    orders[number] = order_factory(production_number=number, status=status)
