"""Best-effort order confirmation email.

Sending never raises: failures are logged and reported through
``NotificationResult``, which callers may inspect or ignore. A placed order
stays placed whatever happens here.
"""

from dataclasses import dataclass, field

import structlog

from notifications.channel import get_email_channel
from notifications.channel.email_port import OutgoingEmail
from notifications.templates import get_template

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderConfirmation:
    """What the email needs to know about an order. Amounts in kroner."""

    order_id: str
    customer_email: str
    customer_name: str
    items: list[dict] = field(default_factory=list)
    delivery_method: str | None = None
    pickup_location: str | None = None
    shipping_address: dict | None = None
    subtotal: float = 0
    shipping: float = 0
    promo_discount: float = 0
    total: float = 0

    def context(self) -> dict:
        return {
            "order_id": self.order_id,
            "customer_name": self.customer_name,
            "items": self.items,
            "delivery_method": self.delivery_method,
            "pickup_location": self.pickup_location,
            "shipping_address": self.shipping_address,
            "subtotal": self.subtotal,
            "shipping": self.shipping,
            "promo_discount": self.promo_discount,
            "total": self.total,
        }


@dataclass(frozen=True)
class NotificationResult:
    sent: bool
    message_id: str | None = None
    error: str | None = None


def send_order_confirmation(confirmation: OrderConfirmation) -> NotificationResult:
    if not confirmation.customer_email or not confirmation.items:
        logger.info("Skipping order confirmation", order_id=confirmation.order_id, reason="no recipient or items")
        return NotificationResult(sent=False, error="Nothing to send")

    try:
        rendered = get_template("order_confirmation").render(confirmation.context())
        message = OutgoingEmail(
            to=confirmation.customer_email,
            subject=rendered["subject"],
            text=rendered["body"],
            html=rendered["html_body"],
        )
        response = get_email_channel().deliver(message)
    except Exception as exc:
        logger.error("Order confirmation email raised", order_id=confirmation.order_id, error=str(exc))
        return NotificationResult(sent=False, error=str(exc))

    if response.get("status") != "sent":
        logger.warning(
            "Order confirmation email failed",
            order_id=confirmation.order_id,
            error=response.get("error"),
        )
        return NotificationResult(sent=False, error=response.get("error"))

    logger.info("Order confirmation email sent", order_id=confirmation.order_id, message_id=response.get("message_id"))
    return NotificationResult(sent=True, message_id=response.get("message_id"))
