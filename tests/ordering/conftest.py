"""Shared fixtures for the ordering tests."""

import pytest
from ordering.cart.products import BlockConfig, Product
from ordering.cart.storage import MemoryCartStorage
from ordering.cart.store import CartStore
from ordering.order.order import Order
from ordering.settings.config import ShopConfig
from protean import current_domain

COMPACT = Product(
    id="compact-20-22-20-18",
    name="Compact",
    price=399,
    config=BlockConfig(
        block_variant="shortedge",
        widths={"index": 20, "middle": 22, "ring": 20, "pinky": 18},
        heights={"index": 0, "middle": 2, "ring": 0, "pinky": -3},
        depth=20,
        total_width=95,
    ),
)
LONG_EDGE = Product(
    id="longedge-21-23-21-19",
    name="Long Edge",
    price=499,
    config=BlockConfig(block_variant="longedge"),
)
STL_FILE = Product(id="stl-compact-20-22-20-18", name="STL-fil Compact", price=199, is_digital=True)


@pytest.fixture()
def compact():
    return COMPACT


@pytest.fixture()
def long_edge():
    return LONG_EDGE


@pytest.fixture()
def stl_file():
    return STL_FILE


@pytest.fixture()
def config():
    return ShopConfig.defaults()


@pytest.fixture()
def cart(config):
    return CartStore(MemoryCartStorage(), config)


def place_order(production_number=1, status=None, provider_session_id=None, **overrides):
    """Persist an order directly through the repository."""
    repo = current_domain.repository_for(Order)
    details = {
        "customer": {"name": "Kari Nordmann", "email": "kari@example.no", "phone": "+4799999999"},
        "delivery_method": "pickup-gneis",
        "pickup_location": "Gneis Lilleaker",
        "line_items": [{"name": "Compact", "quantity": 1, "price": 39900, "product_id": COMPACT.id}],
        "amounts": {"subtotal": 39900, "shipping": 0, "total": 39900, "promo_discount": 0},
    }
    details.update(overrides)
    order = Order.place(
        provider_session_id=provider_session_id or f"cs_test_{production_number:06d}",
        production_number=production_number,
        **details,
    )
    if status:
        order.change_status(status)
    repo.add(order)
    return repo.get(order.id)


@pytest.fixture()
def order_factory():
    return place_order
