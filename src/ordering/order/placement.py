"""Free order placement — command and handler.

Used when a promo code brings the total to zero: no payment session is
opened and the order is persisted straight away under a synthetic provider
session id.
"""

import json
import time
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.audit import FREE_ORDER_PLACED, log_order_event
from ordering.order.order import Order

logger = structlog.get_logger(__name__)

FREE_ORDER_PREFIX = "free_order_"


def free_order_session_id() -> str:
    return f"{FREE_ORDER_PREFIX}{int(time.time() * 1000)}_{uuid4().hex[:8]}"


@ordering.command(part_of="Order")
class PlaceFreeOrder:
    customer_name = String(required=True, max_length=100)
    customer_email = String(required=True, max_length=255)
    customer_phone = String(max_length=30)
    delivery_method = String(required=True, max_length=20)
    pickup_location = String(max_length=100)
    shipping_address = Text()  # JSON: address dict
    line_items = Text(required=True)  # JSON: list of line dicts, prices in øre
    config_snapshot = Text()  # JSON
    subtotal_amount = Integer(required=True, min_value=0)
    shipping_amount = Integer(default=0, min_value=0)
    promo_code = String(max_length=50)
    promo_discount_amount = Integer(default=0, min_value=0)
    payment_method = String(max_length=10)


@ordering.command_handler(part_of=Order)
class PlaceFreeOrderHandler:
    @handle(PlaceFreeOrder)
    def place_free_order(self, command):
        repo = current_domain.repository_for(Order)
        session_id = free_order_session_id()

        order = Order.place(
            provider_session_id=session_id,
            production_number=repo.next_production_number(),
            customer={
                "name": command.customer_name,
                "email": command.customer_email,
                "phone": command.customer_phone,
            },
            delivery_method=command.delivery_method,
            pickup_location=command.pickup_location,
            shipping_address=json.loads(command.shipping_address) if command.shipping_address else None,
            line_items=json.loads(command.line_items),
            config_snapshot=json.loads(command.config_snapshot) if command.config_snapshot else None,
            amounts={
                "subtotal": command.subtotal_amount,
                "shipping": command.shipping_amount or 0,
                "total": 0,
                "promo_discount": command.promo_discount_amount or 0,
            },
            promo_code=command.promo_code,
            payment_method=command.payment_method,
        )
        order, _ = repo.add_once(order)
        log_order_event(
            FREE_ORDER_PLACED,
            order_id=str(order.id),
            provider_session_id=session_id,
            payload={"promo_code": command.promo_code},
        )

        logger.info("Free order placed", order_id=str(order.id), production_number=order.production_number)
        return str(order.id)
