"""Pydantic request/response schemas for the storefront API.

These are external contracts (anti-corruption layer), separate from the
cart dataclasses and Protean commands. Field rules are kept loose here so
that checkout validation reports problems in its own words.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class BlockConfigSchema(BaseModel):
    block_variant: str
    widths: dict[str, float] = Field(default_factory=dict)
    heights: dict[str, float] = Field(default_factory=dict)
    depth: float = 0
    total_width: float = 0


class ProductSchema(BaseModel):
    id: str
    name: str
    price: int
    is_digital: bool = False
    description: str | None = None
    config: BlockConfigSchema | None = None


class CartItemSchema(BaseModel):
    product: ProductSchema
    quantity: int = 1


class AddressSchema(BaseModel):
    line1: str
    line2: str | None = None
    postal_code: str
    city: str


class QueueSchema(BaseModel):
    basis: str
    position: int
    ahead: int
    total: int


class OrderLineSchema(BaseModel):
    name: str
    quantity: int
    price: float
    product_id: str | None = None


class OrderSummary(BaseModel):
    id: str
    status: str
    status_label: str
    production_number: str
    created_at: datetime
    customer_name: str
    delivery_method: str
    pickup_location: str | None = None
    items: list[OrderLineSchema]
    subtotal: float
    shipping: float
    discount: float
    total: float
    promo_code: str | None = None


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Shop
# ---------------------------------------------------------------------------
class QuoteRequest(BaseModel):
    items: list[CartItemSchema]
    delivery_method: str | None = "shipping"
    promo_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product": {"id": "stl-compact", "name": "STL-fil", "price": 199, "is_digital": True}}],
                    "delivery_method": "pickup-gneis",
                    "promo_code": "TESTMEG",
                }
            ]
        }
    }


class QuoteResponse(BaseModel):
    subtotal: int
    shipping: int
    discount: int
    total: int
    discounted_total: int
    promo_code_applied: bool
    digital_only: bool


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    items: list[CartItemSchema]
    promo_code: str | None = None
    name: str
    email: str
    phone: str | None = None
    delivery_method: str | None = None
    address: AddressSchema | None = None
    digital_consent: bool = False
    payment_method: str = "card"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "product": {
                                "id": "compact-20-22-20-18",
                                "name": "Compact",
                                "price": 399,
                                "config": {
                                    "block_variant": "shortedge",
                                    "widths": {"index": 20, "middle": 22, "ring": 20, "pinky": 18},
                                    "heights": {"index": 0, "middle": 2, "ring": 0, "pinky": -3},
                                    "depth": 20,
                                    "total_width": 95,
                                },
                            },
                            "quantity": 1,
                        }
                    ],
                    "name": "Kari Nordmann",
                    "email": "kari@example.no",
                    "delivery_method": "shipping",
                    "address": {"line1": "Storgata 1", "postal_code": "0155", "city": "Oslo"},
                    "payment_method": "card",
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    status: str  # "free" or "redirect"
    order_id: str | None = None
    url: str | None = None
    session_id: str | None = None


class CompleteCheckoutRequest(BaseModel):
    session_id: str


class CheckoutResultResponse(BaseModel):
    status: str
    message: str | None = None
    order: OrderSummary | None = None


class OrderStatusResponse(BaseModel):
    order: OrderSummary
    queue: QueueSchema | None = None


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
class AdminOrder(OrderSummary):
    customer_email: str
    customer_phone: str | None = None
    shipping_address: AddressSchema | None = None
    internal_notes: str | None = None
    provider_session_id: str
    config_snapshot: dict | None = None
    updated_at: datetime | None = None


class AdminOrderList(BaseModel):
    orders: list[AdminOrder]


class UpdateStatusRequest(BaseModel):
    status: str


class UpdateNotesRequest(BaseModel):
    notes: str | None = None


class BulkStatusRequest(BaseModel):
    order_ids: list[str]
    status: str


class BulkDeleteRequest(BaseModel):
    order_ids: list[str]


class CountResponse(BaseModel):
    count: int


class SettingUpdateRequest(BaseModel):
    value: Any


class SettingsResponse(BaseModel):
    settings: dict[str, Any]
