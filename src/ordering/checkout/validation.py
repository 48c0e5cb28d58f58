"""Checkout form validation.

Rules are checked in a fixed order and only the first failure is reported,
as a ``ValidationError`` keyed by the offending field.
"""

import re
from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError

from ordering.cart.pricing import DeliveryMethod
from ordering.cart.products import CartItem, has_digital_items, is_digital_only

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
POSTAL_CODE_PATTERN = re.compile(r"^\d{4}$")

MAX_CART_LINES = 25
MAX_UNIT_PRICE = 100_000
MAX_QUANTITY = 100
MIN_NAME_LENGTH = 2


class PaymentMethod(Enum):
    CARD = "card"
    VIPPS = "vipps"


@dataclass(frozen=True)
class Address:
    line1: str
    postal_code: str
    city: str
    line2: str | None = None

    def to_dict(self) -> dict:
        return {
            "line1": self.line1.strip(),
            "line2": self.line2.strip() if self.line2 and self.line2.strip() else None,
            "postal_code": self.postal_code.strip(),
            "city": self.city.strip(),
        }


@dataclass(frozen=True)
class CheckoutForm:
    name: str
    email: str
    phone: str | None = None
    delivery_method: str | None = None
    address: Address | None = None
    digital_consent: bool = False
    payment_method: str = PaymentMethod.CARD.value


def _fail(field, message):
    raise ValidationError({field: [message]})


def _validate_items(items: list[CartItem]):
    if not items:
        _fail("items", "Your cart is empty")
    if len(items) > MAX_CART_LINES:
        _fail("items", f"A cart can hold at most {MAX_CART_LINES} lines")
    for item in items:
        if not 0 < item.product.price <= MAX_UNIT_PRICE:
            _fail("items", f"Invalid price for {item.product.name}")
        if not 1 <= item.quantity <= MAX_QUANTITY:
            _fail("items", f"Quantity for {item.product.name} must be between 1 and {MAX_QUANTITY}")


def _validate_address(address: Address | None):
    if address is None or not address.line1.strip():
        _fail("address", "Street address is required for shipping")
    if not POSTAL_CODE_PATTERN.match(address.postal_code.strip()):
        _fail("postal_code", "Postal code must be 4 digits")
    if not address.city.strip():
        _fail("city", "City is required for shipping")


def validate_checkout(form: CheckoutForm, items: list[CartItem]) -> None:
    """Raise ``ValidationError`` for the first rule the form breaks."""
    _validate_items(items)

    if len((form.name or "").strip()) < MIN_NAME_LENGTH:
        _fail("name", f"Name must be at least {MIN_NAME_LENGTH} characters")

    if not EMAIL_PATTERN.match((form.email or "").strip()):
        _fail("email", "Enter a valid email address")

    digital_only = is_digital_only(items)
    if not digital_only:
        if not form.delivery_method:
            _fail("delivery_method", "Choose a delivery method")
        if form.delivery_method not in {method.value for method in DeliveryMethod}:
            _fail("delivery_method", f"Unknown delivery method: {form.delivery_method}")

    if has_digital_items(items) and not form.digital_consent:
        _fail("digital_consent", "Consent to immediate delivery of digital content is required")

    if form.delivery_method == DeliveryMethod.SHIPPING.value and not digital_only:
        _validate_address(form.address)

    if form.payment_method not in {method.value for method in PaymentMethod}:
        _fail("payment_method", "Payment method must be card or vipps")
