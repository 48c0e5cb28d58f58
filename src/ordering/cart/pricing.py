"""Pricing and discount calculator.

Pure functions over cart lines and an explicit shipping cost / promo table.
All amounts are whole kroner. Nothing here touches the network or the
database, so the same inputs always give the same totals.
"""

from dataclasses import dataclass
from enum import Enum

from ordering.cart.products import CartItem, is_digital_only


class DeliveryMethod(Enum):
    SHIPPING = "shipping"
    PICKUP_GNEIS = "pickup-gneis"
    PICKUP_OSLO = "pickup-oslo"


# Recorded on orders whose cart holds only digital goods
DIGITAL_DELIVERY = "digital"

PICKUP_LOCATIONS = {
    DeliveryMethod.PICKUP_GNEIS.value: "Gneis Lilleaker",
    DeliveryMethod.PICKUP_OSLO.value: "Oslo Klatresenter",
}


def is_pickup(delivery_method: str | None) -> bool:
    return delivery_method in PICKUP_LOCATIONS


class PromoType(Enum):
    PERCENT = "percent"
    FIXED = "fixed"


@dataclass(frozen=True)
class PromoCode:
    code: str
    type: str
    value: int

    def discount_for(self, total: int) -> int:
        """Discount on a pre-discount total; never negative, never above the total."""
        if total <= 0:
            return 0
        if self.type == PromoType.PERCENT.value:
            # Half-up rounding of total * value / 100 on integers
            discount = (total * self.value + 50) // 100
        else:
            discount = self.value
        return max(0, min(discount, total))


@dataclass(frozen=True)
class CartTotals:
    subtotal: int
    shipping: int
    discount: int
    total: int
    discounted_total: int

    @property
    def is_free(self) -> bool:
        return self.discounted_total == 0

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "shipping": self.shipping,
            "discount": self.discount,
            "total": self.total,
            "discounted_total": self.discounted_total,
        }


def normalize_promo_code(code: str | None) -> str:
    return (code or "").strip().upper()


def lookup_promo(code: str | None, promo_codes: dict[str, PromoCode]) -> PromoCode | None:
    """Case-insensitive, whitespace-trimmed lookup in the promo table."""
    key = normalize_promo_code(code)
    if not key:
        return None
    return promo_codes.get(key)


def shipping_for(
    items: list[CartItem],
    delivery_method: str | None,
    shipping_cost: int,
    digital_only: bool | None = None,
) -> int:
    if digital_only is None:
        digital_only = is_digital_only(items)
    if not items or digital_only or is_pickup(delivery_method):
        return 0
    return shipping_cost


def calculate_totals(
    items: list[CartItem],
    delivery_method: str | None,
    shipping_cost: int,
    promo: PromoCode | None = None,
    digital_only: bool | None = None,
) -> CartTotals:
    """Price a cart.

    Args:
        items: Cart lines; unit prices in kroner.
        delivery_method: A ``DeliveryMethod`` value, or ``None`` if not chosen yet.
        shipping_cost: Flat shipping cost from the shop settings.
        promo: Already resolved promo code, if any.
        digital_only: Override for the digital-only flag; derived from items when omitted.
    """
    subtotal = sum(item.line_total for item in items)
    shipping = shipping_for(items, delivery_method, shipping_cost, digital_only)
    total = subtotal + shipping
    discount = promo.discount_for(total) if promo else 0

    return CartTotals(
        subtotal=subtotal,
        shipping=shipping,
        discount=discount,
        total=total,
        discounted_total=max(0, total - discount),
    )
