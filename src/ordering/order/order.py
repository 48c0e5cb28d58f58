"""Order aggregate — the durable settlement record of a purchase.

An Order is created exactly once, either by the free checkout path or by
webhook settlement of a paid checkout session. After that it only changes
through status transitions and internal-notes edits.

Statuses follow the workshop's production pipeline:
    new → manual_review → in_production → ready_to_print → printing →
    shipped → done
with side branches error, arkivert (archived) and reklamasjon (complaint).
Staff may move an order to any status; only the enum is enforced.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, Text, ValueObject

from ordering.domain import ordering
from ordering.order.events import OrderNotesUpdated, OrderPlaced, OrderStatusChanged
from shared.money import CURRENCY


class OrderStatus(Enum):
    NEW = "new"
    MANUAL_REVIEW = "manual_review"
    IN_PRODUCTION = "in_production"
    READY_TO_PRINT = "ready_to_print"
    PRINTING = "printing"
    SHIPPED = "shipped"
    DONE = "done"
    ERROR = "error"
    ARKIVERT = "arkivert"
    REKLAMASJON = "reklamasjon"


STATUS_LABELS = {
    OrderStatus.NEW.value: "Ny",
    OrderStatus.MANUAL_REVIEW.value: "Manuell gjennomgang",
    OrderStatus.IN_PRODUCTION.value: "I produksjon",
    OrderStatus.READY_TO_PRINT.value: "Klar til print",
    OrderStatus.PRINTING.value: "Printer",
    OrderStatus.SHIPPED.value: "Sendt",
    OrderStatus.DONE.value: "Fullført",
    OrderStatus.ERROR.value: "Feil",
    OrderStatus.ARKIVERT.value: "Arkivert",
    OrderStatus.REKLAMASJON.value: "Reklamasjon",
}

# Statuses in which an order waits its turn in the workshop
QUEUED_STATUSES = frozenset(
    {
        OrderStatus.IN_PRODUCTION.value,
        OrderStatus.READY_TO_PRINT.value,
        OrderStatus.PRINTING.value,
    }
)


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None


def format_production_number(production_number: int | None) -> str:
    """Zero-padded to four digits; ``-`` when the order has none."""
    if production_number is None:
        return "-"
    return f"{production_number:04d}"


@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where a shipped order goes; recorded once at checkout."""

    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    postal_code = String(required=True, max_length=10)
    city = String(required=True, max_length=100)


@ordering.aggregate
class Order:
    created_at = DateTime(required=True)
    updated_at = DateTime()
    status = String(max_length=20, choices=OrderStatus, default=OrderStatus.NEW.value)
    production_number = Integer(min_value=1)

    customer_name = String(required=True, max_length=100)
    customer_email = String(required=True, max_length=255)
    customer_phone = String(max_length=30)

    delivery_method = String(required=True, max_length=20)
    pickup_location = String(max_length=100)
    shipping_address = ValueObject(ShippingAddress)

    line_items = Text(required=True)  # JSON: [{name, quantity, price (øre), product_id}]
    config_snapshot = Text()  # JSON

    # Amounts in øre
    subtotal_amount = Integer(required=True, min_value=0)
    shipping_amount = Integer(default=0, min_value=0)
    total_amount = Integer(required=True, min_value=0)
    promo_discount_amount = Integer(default=0, min_value=0)
    currency = String(max_length=3, default=CURRENCY)
    promo_code = String(max_length=50)
    payment_method = String(max_length=10)

    provider_session_id = String(required=True, max_length=255, unique=True)
    provider_payment_intent_id = String(max_length=255)

    internal_notes = Text()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        provider_session_id,
        customer,
        delivery_method,
        line_items,
        amounts,
        production_number=None,
        pickup_location=None,
        shipping_address=None,
        config_snapshot=None,
        promo_code=None,
        payment_method=None,
        provider_payment_intent_id=None,
    ):
        """Create a new order in status ``new``.

        Args:
            customer: dict with name, email and optional phone.
            line_items: list of line dicts, prices in øre.
            amounts: dict with subtotal, shipping, total and promo_discount, all in øre.
            shipping_address: dict with line1, optional line2, postal_code, city.
        """
        now = datetime.now(UTC)
        order = cls(
            created_at=now,
            updated_at=now,
            status=OrderStatus.NEW.value,
            production_number=production_number,
            customer_name=customer["name"],
            customer_email=customer["email"],
            customer_phone=customer.get("phone"),
            delivery_method=delivery_method,
            pickup_location=pickup_location,
            shipping_address=ShippingAddress(**shipping_address) if shipping_address else None,
            line_items=json.dumps(line_items),
            config_snapshot=json.dumps(config_snapshot) if config_snapshot is not None else None,
            subtotal_amount=amounts["subtotal"],
            shipping_amount=amounts.get("shipping", 0),
            total_amount=amounts["total"],
            promo_discount_amount=amounts.get("promo_discount", 0),
            promo_code=promo_code,
            payment_method=payment_method,
            provider_session_id=provider_session_id,
            provider_payment_intent_id=provider_payment_intent_id,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                production_number=production_number,
                provider_session_id=provider_session_id,
                customer_email=order.customer_email,
                delivery_method=delivery_method,
                total_amount=order.total_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def change_status(self, new_status):
        """Move to any known status. Returns False when the order is already there."""
        status = parse_status(new_status)
        previous = self.status
        if status.value == previous:
            return False

        now = datetime.now(UTC)
        self.status = status.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=status.value,
                changed_at=now,
            )
        )
        return True

    def update_notes(self, notes):
        now = datetime.now(UTC)
        self.internal_notes = notes or None
        self.updated_at = now
        self.raise_(OrderNotesUpdated(order_id=str(self.id), updated_at=now))

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def items_data(self) -> list[dict]:
        return json.loads(self.line_items) if self.line_items else []

    @property
    def snapshot_data(self) -> dict | None:
        return json.loads(self.config_snapshot) if self.config_snapshot else None

    @property
    def status_label(self) -> str:
        return STATUS_LABELS.get(self.status, self.status)

    @property
    def display_production_number(self) -> str:
        return format_production_number(self.production_number)

    @property
    def is_queued(self) -> bool:
        return self.status in QUEUED_STATUSES and self.production_number is not None
