"""Builds the confirmation email payload from a persisted order."""

from notifications.confirmation import OrderConfirmation
from shared.money import to_kroner

from ordering.order.order import Order


def confirmation_for(order: Order) -> OrderConfirmation:
    address = order.shipping_address
    return OrderConfirmation(
        order_id=str(order.id),
        customer_email=order.customer_email,
        customer_name=order.customer_name,
        items=[
            {"name": item["name"], "quantity": item["quantity"], "price": to_kroner(item["price"])}
            for item in order.items_data
        ],
        delivery_method=order.delivery_method,
        pickup_location=order.pickup_location,
        shipping_address=(
            {
                "line1": address.line1,
                "line2": address.line2,
                "postal_code": address.postal_code,
                "city": address.city,
            }
            if address
            else None
        ),
        subtotal=to_kroner(order.subtotal_amount),
        shipping=to_kroner(order.shipping_amount),
        promo_discount=to_kroner(order.promo_discount_amount),
        total=to_kroner(order.total_amount),
    )
