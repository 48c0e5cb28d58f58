"""Cart store — line items, delivery choice and promo code for one shopper.

Items persist to durable storage under ``CART_STORAGE_KEY`` as a JSON array
of cart lines. Delivery method and promo code are session state only.
Every mutation recomputes ``totals`` with the pricing calculator, using the
shop configuration handed to the store.
"""

import json

import structlog
from protean.exceptions import ValidationError

from ordering.cart.pricing import (
    CartTotals,
    DeliveryMethod,
    PromoCode,
    calculate_totals,
    lookup_promo,
)
from ordering.cart.products import CartItem, Product, has_digital_items, is_digital_only
from ordering.cart.storage import CartStorage
from ordering.settings.config import ShopConfig

logger = structlog.get_logger(__name__)

CART_STORAGE_KEY = "bs-climbing-cart"


class CartStore:
    def __init__(self, storage: CartStorage, config: ShopConfig | None = None) -> None:
        self.storage = storage
        self.config = config or ShopConfig.defaults()
        self.items: list[CartItem] = self._load()
        self.delivery_method: str = DeliveryMethod.SHIPPING.value
        self.promo: PromoCode | None = None
        self.is_open = False
        self.totals: CartTotals = self._recalculate()

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def _load(self) -> list[CartItem]:
        raw = self.storage.get(CART_STORAGE_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("stored cart is not a list")
            return [CartItem.from_dict(entry) for entry in data]
        except (ValueError, KeyError, TypeError):
            # Corrupt contents mean "no cart"; the next write replaces them
            logger.debug("Discarding unreadable stored cart")
            return []

    def _persist(self) -> None:
        self.storage.set(CART_STORAGE_KEY, json.dumps([item.to_dict() for item in self.items]))

    def _recalculate(self) -> CartTotals:
        return calculate_totals(
            self.items,
            self.delivery_method,
            self.config.shipping_cost,
            promo=self.promo,
            digital_only=self.is_digital_only,
        )

    def _changed(self) -> None:
        self._persist()
        self.totals = self._recalculate()

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def is_digital_only(self) -> bool:
        return is_digital_only(self.items)

    @property
    def has_digital_items(self) -> bool:
        return has_digital_items(self.items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def promo_code(self) -> str | None:
        return self.promo.code if self.promo else None

    def refresh_config(self, config: ShopConfig) -> None:
        """Re-price with newly loaded shop settings."""
        self.config = config
        if self.promo is not None:
            self.promo = lookup_promo(self.promo.code, config.promo_codes)
        self.totals = self._recalculate()

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_item(self, product: Product, quantity: int = 1) -> None:
        """Add a product, merging into an existing line with the same product id."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        for index, item in enumerate(self.items):
            if item.product.id == product.id:
                self.items[index] = CartItem(product=item.product, quantity=item.quantity + quantity)
                break
        else:
            self.items.append(CartItem(product=product, quantity=quantity))

        self.is_open = True
        self._changed()

    def remove_item(self, product_id: str) -> None:
        self.items = [item for item in self.items if item.product.id != product_id]
        self._changed()

    def set_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(product_id)
            return

        self.items = [
            CartItem(product=item.product, quantity=quantity) if item.product.id == product_id else item
            for item in self.items
        ]
        self._changed()

    def set_delivery_method(self, delivery_method: str) -> None:
        if delivery_method not in {method.value for method in DeliveryMethod}:
            raise ValidationError({"delivery_method": [f"Unknown delivery method: {delivery_method}"]})
        self.delivery_method = delivery_method
        self.totals = self._recalculate()

    def apply_promo_code(self, code: str) -> bool:
        """Apply a promo code; unknown codes are rejected and leave the cart as it was."""
        promo = lookup_promo(code, self.config.promo_codes)
        if promo is None:
            logger.info("Unknown promo code rejected", code=code)
            return False
        self.promo = promo
        self.totals = self._recalculate()
        return True

    def clear_promo_code(self) -> None:
        self.promo = None
        self.totals = self._recalculate()

    def clear(self) -> None:
        """Empty the cart and reset delivery method and promo code."""
        self.items = []
        self.delivery_method = DeliveryMethod.SHIPPING.value
        self.promo = None
        self._changed()

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False
