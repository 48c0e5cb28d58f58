"""Storefront API package."""

from ordering.api.errors import register_error_handlers
from ordering.api.routes import admin_router, checkout_router, order_router, shop_router

__all__ = ["admin_router", "checkout_router", "order_router", "register_error_handlers", "shop_router"]
