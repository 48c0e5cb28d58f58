"""Read-through shop configuration.

Site settings are stored as key/value rows. ``ShopConfig`` is the parsed,
sanitized snapshot of those rows, loaded once per request and passed
explicitly into pricing and checkout. Anything missing or malformed falls
back to the defaults below.
"""

from dataclasses import dataclass, field

import structlog

from ordering.cart.pricing import PromoCode, PromoType, normalize_promo_code
from ordering.cart.products import BlockVariant

logger = structlog.get_logger(__name__)

DEFAULT_MAINTENANCE_MESSAGE = "Nettbutikken er midlertidig stengt for vedlikehold. Prøv igjen senere."


@dataclass(frozen=True)
class VariantPricing:
    name: str
    price: int
    description: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "price": self.price, "description": self.description}


@dataclass(frozen=True)
class MaintenanceMode:
    enabled: bool = False
    message: str = DEFAULT_MAINTENANCE_MESSAGE

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "message": self.message}


DEFAULT_PRODUCTS = {
    BlockVariant.SHORTEDGE.value: VariantPricing(
        name="Compact",
        price=399,
        description="Kompakt crimp-blokk med kort kant",
    ),
    BlockVariant.LONGEDGE.value: VariantPricing(
        name="Long Edge",
        price=499,
        description="Crimp-blokk med lang kant for flere grepsposisjoner",
    ),
}
DEFAULT_STL_FILE_PRICE = 199
DEFAULT_SHIPPING_COST = 79
DEFAULT_PROMO_CODES = {
    "TESTMEG": PromoCode(code="TESTMEG", type=PromoType.PERCENT.value, value=100),
}


def _as_amount(value, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float) or value < 0:
        return default
    return round(value)


def sanitize_products(raw) -> dict[str, VariantPricing]:
    if not isinstance(raw, dict):
        return dict(DEFAULT_PRODUCTS)

    products = {}
    for variant, default in DEFAULT_PRODUCTS.items():
        entry = raw.get(variant)
        if not isinstance(entry, dict):
            products[variant] = default
            continue
        name = entry.get("name")
        description = entry.get("description")
        products[variant] = VariantPricing(
            name=name.strip() if isinstance(name, str) and name.strip() else default.name,
            price=_as_amount(entry.get("price"), default.price),
            description=description if isinstance(description, str) else default.description,
        )
    return products


def sanitize_promo_codes(raw) -> dict[str, PromoCode]:
    """Keep well-formed codes only.

    Codes are trimmed and upper-cased. Percent values are rounded and must be
    within 1..100; fixed values are rounded and must be positive. If nothing
    valid remains, the default table is returned.
    """
    if not isinstance(raw, dict):
        return dict(DEFAULT_PROMO_CODES)

    promo_codes = {}
    for code, entry in raw.items():
        normalized = normalize_promo_code(code) if isinstance(code, str) else ""
        if not normalized or not isinstance(entry, dict):
            continue

        promo_type = entry.get("type")
        value = entry.get("value")
        if isinstance(value, bool) or not isinstance(value, int | float):
            continue
        value = round(value)

        if promo_type == PromoType.PERCENT.value and 1 <= value <= 100:
            promo_codes[normalized] = PromoCode(code=normalized, type=promo_type, value=value)
        elif promo_type == PromoType.FIXED.value and value > 0:
            promo_codes[normalized] = PromoCode(code=normalized, type=promo_type, value=value)
        else:
            logger.warning("Ignoring invalid promo code entry", code=normalized)

    return promo_codes or dict(DEFAULT_PROMO_CODES)


def sanitize_maintenance_mode(raw) -> MaintenanceMode:
    if not isinstance(raw, dict):
        return MaintenanceMode()
    message = raw.get("message")
    return MaintenanceMode(
        enabled=raw.get("enabled") is True,
        message=message if isinstance(message, str) and message.strip() else DEFAULT_MAINTENANCE_MESSAGE,
    )


@dataclass(frozen=True)
class ShopConfig:
    products: dict[str, VariantPricing] = field(default_factory=lambda: dict(DEFAULT_PRODUCTS))
    stl_file_price: int = DEFAULT_STL_FILE_PRICE
    shipping_cost: int = DEFAULT_SHIPPING_COST
    promo_codes: dict[str, PromoCode] = field(default_factory=lambda: dict(DEFAULT_PROMO_CODES))
    maintenance: MaintenanceMode = field(default_factory=MaintenanceMode)

    @classmethod
    def defaults(cls) -> "ShopConfig":
        return cls()

    @classmethod
    def from_settings(cls, values: dict) -> "ShopConfig":
        """Build a config from decoded setting values keyed by setting name."""
        return cls(
            products=sanitize_products(values.get("products")),
            stl_file_price=_as_amount(values.get("stl_file_price"), DEFAULT_STL_FILE_PRICE),
            shipping_cost=_as_amount(values.get("shipping_cost"), DEFAULT_SHIPPING_COST),
            promo_codes=sanitize_promo_codes(values.get("promo_codes")),
            maintenance=sanitize_maintenance_mode(values.get("maintenance_mode")),
        )

    def price_for_variant(self, block_variant: str) -> int:
        pricing = self.products.get(block_variant)
        if pricing is None:
            raise KeyError(f"Unknown block variant: {block_variant}")
        return pricing.price

    def public_view(self) -> dict:
        """Settings safe to show shoppers; the promo table is never exposed."""
        return {
            "products": {variant: pricing.to_dict() for variant, pricing in self.products.items()},
            "stl_file_price": self.stl_file_price,
            "shipping_cost": self.shipping_cost,
            "maintenance_mode": self.maintenance.to_dict(),
        }
