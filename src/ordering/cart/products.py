"""Products and cart lines.

A Product is immutable once it is in the cart: a climber who changes
finger widths or edge variant creates a new product identity. Products are
plain frozen dataclasses so the cart can be priced offline, without a
domain context.
"""

from dataclasses import dataclass, field
from enum import Enum


class BlockVariant(Enum):
    SHORTEDGE = "shortedge"
    LONGEDGE = "longedge"


class ProductType(Enum):
    """How a line is fulfilled; recorded in the order's config snapshot."""

    FILE = "file"
    PRINTED = "printed"


@dataclass(frozen=True)
class BlockConfig:
    """Physical dimensions of a configured crimp block (millimetres)."""

    block_variant: str
    widths: dict = field(default_factory=dict)
    heights: dict = field(default_factory=dict)
    depth: float = 0
    total_width: float = 0

    def to_dict(self) -> dict:
        return {
            "block_variant": self.block_variant,
            "widths": dict(self.widths),
            "heights": dict(self.heights),
            "depth": self.depth,
            "total_width": self.total_width,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BlockConfig":
        return cls(
            block_variant=data["block_variant"],
            widths=dict(data.get("widths") or {}),
            heights=dict(data.get("heights") or {}),
            depth=data.get("depth") or 0,
            total_width=data.get("total_width") or 0,
        )


@dataclass(frozen=True)
class Product:
    """A purchasable unit priced in whole kroner."""

    id: str
    name: str
    price: int
    is_digital: bool = False
    description: str | None = None
    config: BlockConfig | None = None

    @property
    def product_type(self) -> ProductType:
        return ProductType.FILE if self.is_digital else ProductType.PRINTED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "is_digital": self.is_digital,
            "description": self.description,
            "config": self.config.to_dict() if self.config else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        config = data.get("config")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            price=data["price"],
            is_digital=bool(data.get("is_digital", False)),
            description=data.get("description"),
            config=BlockConfig.from_dict(config) if config else None,
        )


@dataclass(frozen=True)
class CartItem:
    product: Product
    quantity: int = 1

    @property
    def line_total(self) -> int:
        return self.product.price * self.quantity

    def to_dict(self) -> dict:
        return {"product": self.product.to_dict(), "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        quantity = data["quantity"]
        if not isinstance(quantity, int) or quantity < 1:
            raise ValueError(f"Invalid quantity: {quantity!r}")
        return cls(product=Product.from_dict(data["product"]), quantity=quantity)


def is_digital_only(items: list[CartItem]) -> bool:
    """True when the cart has items and every one of them is digital."""
    return bool(items) and all(item.product.is_digital for item in items)


def has_digital_items(items: list[CartItem]) -> bool:
    return any(item.product.is_digital for item in items)
