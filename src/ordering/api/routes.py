"""FastAPI routes for the storefront — shop settings, checkout, order status, admin."""

import hmac
import json
import os

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from payments.gateway import get_gateway
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from shared.money import to_kroner

from ordering.api.errors import error_response
from ordering.api.schemas import (
    AddressSchema,
    AdminOrder,
    AdminOrderList,
    BulkDeleteRequest,
    BulkStatusRequest,
    CheckoutRequest,
    CheckoutResponse,
    CheckoutResultResponse,
    CompleteCheckoutRequest,
    CountResponse,
    OrderStatusResponse,
    OrderSummary,
    QueueSchema,
    QuoteRequest,
    QuoteResponse,
    SettingsResponse,
    SettingUpdateRequest,
    StatusResponse,
    UpdateNotesRequest,
    UpdateStatusRequest,
)
from ordering.cart.products import BlockConfig, Product
from ordering.cart.storage import MemoryCartStorage
from ordering.cart.store import CartStore
from ordering.checkout.orchestrator import CheckoutOrchestrator, FreeOrderPlaced
from ordering.checkout.result import CheckoutResult, get_checkout_result
from ordering.checkout.validation import Address, CheckoutForm
from ordering.order.management import (
    BulkDeleteOrders,
    BulkUpdateOrderStatus,
    UpdateOrderNotes,
    UpdateOrderStatus,
)
from ordering.order.order import Order
from ordering.order.status import get_order_status
from ordering.settings.config import ShopConfig
from ordering.settings.management import UpdateSiteSetting
from ordering.settings.setting import load_shop_config, read_settings

DEFAULT_SITE_URL = "http://localhost:8080"


def site_url() -> str:
    return os.environ.get("PUBLIC_SITE_URL", DEFAULT_SITE_URL)


# ---------------------------------------------------------------------------
# Mapping helpers
# ---------------------------------------------------------------------------
def _cart_from_request(items, delivery_method, promo_code, config: ShopConfig) -> tuple[CartStore, bool]:
    """Rebuild a transient cart from posted lines. Returns the cart and whether the promo applied."""
    cart = CartStore(MemoryCartStorage(), config)
    for line in items:
        product = line.product
        cart.add_item(
            Product(
                id=product.id,
                name=product.name,
                price=product.price,
                is_digital=product.is_digital,
                description=product.description,
                config=BlockConfig(**product.config.model_dump()) if product.config else None,
            ),
            line.quantity,
        )
    if delivery_method:
        cart.set_delivery_method(delivery_method)
    promo_applied = cart.apply_promo_code(promo_code) if promo_code else False
    return cart, promo_applied


def _order_summary(order: Order) -> dict:
    return {
        "id": str(order.id),
        "status": order.status,
        "status_label": order.status_label,
        "production_number": order.display_production_number,
        "created_at": order.created_at,
        "customer_name": order.customer_name,
        "delivery_method": order.delivery_method,
        "pickup_location": order.pickup_location,
        "items": [{**item, "price": to_kroner(item["price"])} for item in order.items_data],
        "subtotal": to_kroner(order.subtotal_amount),
        "shipping": to_kroner(order.shipping_amount),
        "discount": to_kroner(order.promo_discount_amount),
        "total": to_kroner(order.total_amount),
        "promo_code": order.promo_code,
    }


def _admin_order(order: Order) -> AdminOrder:
    address = order.shipping_address
    return AdminOrder(
        **_order_summary(order),
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        shipping_address=(
            AddressSchema(
                line1=address.line1,
                line2=address.line2,
                postal_code=address.postal_code,
                city=address.city,
            )
            if address
            else None
        ),
        internal_notes=order.internal_notes,
        provider_session_id=order.provider_session_id,
        config_snapshot=order.snapshot_data,
        updated_at=order.updated_at,
    )


def _result_response(result: CheckoutResult) -> CheckoutResultResponse:
    return CheckoutResultResponse(
        status=result.status,
        message=result.message,
        order=OrderSummary(**_order_summary(result.order)) if result.order else None,
    )


# ---------------------------------------------------------------------------
# Shop Router
# ---------------------------------------------------------------------------
shop_router = APIRouter(prefix="/shop", tags=["shop"])


@shop_router.get("/settings")
async def public_settings() -> dict:
    return load_shop_config().public_view()


@shop_router.post("/quote", response_model=QuoteResponse)
async def quote(body: QuoteRequest) -> QuoteResponse:
    """Price a cart with the current shop settings."""
    cart, promo_applied = _cart_from_request(body.items, body.delivery_method, body.promo_code, load_shop_config())
    return QuoteResponse(
        **cart.totals.to_dict(),
        promo_code_applied=promo_applied,
        digital_only=cart.is_digital_only,
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", status_code=201, response_model=CheckoutResponse)
async def checkout(body: CheckoutRequest) -> CheckoutResponse:
    config = load_shop_config()
    cart, promo_applied = _cart_from_request(body.items, body.delivery_method, None, config)
    if body.promo_code and not cart.apply_promo_code(body.promo_code):
        raise ValidationError({"promo_code": ["Unknown promo code"]})

    form = CheckoutForm(
        name=body.name,
        email=body.email,
        phone=body.phone,
        delivery_method=body.delivery_method,
        address=Address(**body.address.model_dump()) if body.address else None,
        digital_consent=body.digital_consent,
        payment_method=body.payment_method,
    )
    outcome = CheckoutOrchestrator(config, get_gateway(), site_url()).submit(form, cart)

    if isinstance(outcome, FreeOrderPlaced):
        return CheckoutResponse(status="free", order_id=outcome.order_id)
    return CheckoutResponse(status="redirect", url=outcome.url, session_id=outcome.session_id)


@checkout_router.post("/complete", response_model=CheckoutResultResponse)
async def complete_checkout(body: CompleteCheckoutRequest) -> CheckoutResultResponse:
    """Success callback after the hosted payment page."""
    orchestrator = CheckoutOrchestrator(load_shop_config(), get_gateway(), site_url())
    return _result_response(orchestrator.complete(body.session_id))


@checkout_router.get("/result/{session_id}", response_model=CheckoutResultResponse)
async def checkout_result(session_id: str) -> CheckoutResultResponse:
    return _result_response(get_checkout_result(session_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}/status", response_model=OrderStatusResponse)
async def order_status(order_id: str) -> OrderStatusResponse | JSONResponse:
    try:
        report = get_order_status(order_id)
    except ObjectNotFoundError:
        return error_response(404, "ORDER_NOT_FOUND", "Order not found")

    return OrderStatusResponse(
        order=OrderSummary(**_order_summary(report.order)),
        queue=QueueSchema(**report.queue.to_dict()) if report.queue else None,
    )


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
def require_admin(x_admin_token: str = Header(default="")) -> None:
    expected = os.environ.get("ADMIN_API_TOKEN")
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API is not configured")
    if not hmac.compare_digest(x_admin_token.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid admin token")


admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_router.get("/orders", response_model=AdminOrderList)
async def list_orders(status: str | None = None, limit: int = 100) -> AdminOrderList:
    orders = current_domain.repository_for(Order).list_recent(status=status, limit=limit)
    return AdminOrderList(orders=[_admin_order(order) for order in orders])


@admin_router.get("/orders/{order_id}", response_model=AdminOrder)
async def get_order(order_id: str) -> AdminOrder:
    return _admin_order(current_domain.repository_for(Order).get(order_id))


@admin_router.put("/orders/{order_id}/status", response_model=StatusResponse)
async def update_order_status(order_id: str, body: UpdateStatusRequest) -> StatusResponse:
    command = UpdateOrderStatus(order_id=order_id, status=body.status)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@admin_router.put("/orders/{order_id}/notes", response_model=StatusResponse)
async def update_order_notes(order_id: str, body: UpdateNotesRequest) -> StatusResponse:
    command = UpdateOrderNotes(order_id=order_id, notes=body.notes)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@admin_router.post("/orders/bulk-status", response_model=CountResponse)
async def bulk_update_status(body: BulkStatusRequest) -> CountResponse:
    command = BulkUpdateOrderStatus(order_ids=json.dumps(body.order_ids), status=body.status)
    count = current_domain.process(command, asynchronous=False)
    return CountResponse(count=count)


@admin_router.post("/orders/bulk-delete", response_model=CountResponse)
async def bulk_delete(body: BulkDeleteRequest) -> CountResponse:
    command = BulkDeleteOrders(order_ids=json.dumps(body.order_ids))
    count = current_domain.process(command, asynchronous=False)
    return CountResponse(count=count)


@admin_router.get("/settings", response_model=SettingsResponse)
async def get_settings() -> SettingsResponse:
    return SettingsResponse(settings=read_settings())


@admin_router.put("/settings/{key}", response_model=StatusResponse)
async def update_setting(key: str, body: SettingUpdateRequest) -> StatusResponse:
    command = UpdateSiteSetting(key=key, value=json.dumps(body.value))
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
