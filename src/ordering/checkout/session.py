"""Checkout session — snapshot of a paid checkout while the provider takes payment.

Created ``pending`` before the customer is sent to the hosted payment
page. Settlement moves it to ``paid`` (linking the order), expiry to
``expired``, and a provider failure while opening the page to ``failed``.
A paid session never moves again.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering
from shared.money import CURRENCY


class CheckoutStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"


EXPIRED_MESSAGE = "Stripe session expired before payment."


@ordering.aggregate
class CheckoutSession:
    status = String(max_length=10, choices=CheckoutStatus, default=CheckoutStatus.PENDING.value)

    customer_name = String(required=True, max_length=100)
    customer_email = String(required=True, max_length=255)
    customer_phone = String(max_length=30)
    delivery_method = String(required=True, max_length=20)
    pickup_location = String(max_length=100)
    shipping_address = Text()  # JSON
    payment_method = String(max_length=10)

    line_items = Text(required=True)  # JSON, prices in øre
    config_snapshot = Text()  # JSON
    subtotal_amount = Integer(required=True, min_value=0)
    shipping_amount = Integer(default=0, min_value=0)
    total_amount = Integer(required=True, min_value=0)
    promo_code = String(max_length=50)
    promo_discount_amount = Integer(default=0, min_value=0)
    currency = String(max_length=3, default=CURRENCY)

    provider_session_id = String(max_length=255)
    provider_payment_intent_id = String(max_length=255)
    order_id = Identifier()
    error_message = Text()
    confirmation_email_sent_at = DateTime()

    created_at = DateTime(required=True)
    updated_at = DateTime()

    @classmethod
    def open(
        cls,
        customer,
        delivery_method,
        line_items,
        amounts,
        pickup_location=None,
        shipping_address=None,
        config_snapshot=None,
        promo_code=None,
        payment_method=None,
    ):
        """Start a pending session. Amounts and line item prices are øre."""
        now = datetime.now(UTC)
        return cls(
            status=CheckoutStatus.PENDING.value,
            customer_name=customer["name"],
            customer_email=customer["email"],
            customer_phone=customer.get("phone"),
            delivery_method=delivery_method,
            pickup_location=pickup_location,
            shipping_address=json.dumps(shipping_address) if shipping_address else None,
            payment_method=payment_method,
            line_items=json.dumps(line_items),
            config_snapshot=json.dumps(config_snapshot) if config_snapshot is not None else None,
            subtotal_amount=amounts["subtotal"],
            shipping_amount=amounts.get("shipping", 0),
            total_amount=amounts["total"],
            promo_code=promo_code,
            promo_discount_amount=amounts.get("promo_discount", 0),
            created_at=now,
            updated_at=now,
        )

    @property
    def checkout_ref(self) -> str:
        return str(self.id)

    @property
    def is_paid(self) -> bool:
        return self.status == CheckoutStatus.PAID.value

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def _touch(self):
        self.updated_at = datetime.now(UTC)

    def attach_provider_session(self, provider_session_id):
        self.provider_session_id = provider_session_id
        self.error_message = None
        self._touch()

    def mark_paid(self, order_id, provider_session_id=None, payment_intent_id=None):
        """Link the settled order. Returns False if nothing changed (repeat delivery)."""
        if self.is_paid and str(self.order_id) == str(order_id):
            return False

        self.status = CheckoutStatus.PAID.value
        self.order_id = str(order_id)
        if provider_session_id and not self.provider_session_id:
            self.provider_session_id = provider_session_id
        if payment_intent_id:
            self.provider_payment_intent_id = payment_intent_id
        self.error_message = None
        self._touch()
        return True

    def mark_expired(self, message=EXPIRED_MESSAGE):
        if self.is_paid or self.status == CheckoutStatus.EXPIRED.value:
            return False
        self.status = CheckoutStatus.EXPIRED.value
        self.error_message = message
        self._touch()
        return True

    def mark_failed(self, message):
        self.status = CheckoutStatus.FAILED.value
        self.error_message = message
        self._touch()

    def record_confirmation_sent(self):
        self.confirmation_email_sent_at = datetime.now(UTC)
        self._touch()

    # -------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------
    def order_details(self) -> dict:
        """Keyword arguments for ``Order.place`` taken from this snapshot."""
        return {
            "customer": {
                "name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone,
            },
            "delivery_method": self.delivery_method,
            "pickup_location": self.pickup_location,
            "shipping_address": json.loads(self.shipping_address) if self.shipping_address else None,
            "line_items": json.loads(self.line_items),
            "config_snapshot": json.loads(self.config_snapshot) if self.config_snapshot else None,
            "amounts": {
                "subtotal": self.subtotal_amount,
                "shipping": self.shipping_amount or 0,
                "total": self.total_amount,
                "promo_discount": self.promo_discount_amount or 0,
            },
            "promo_code": self.promo_code,
            "payment_method": self.payment_method,
        }


@ordering.repository(part_of=CheckoutSession)
class CheckoutSessionRepository:
    def find_by_provider_session(self, provider_session_id: str) -> CheckoutSession | None:
        if not provider_session_id:
            return None
        results = self._dao.query.filter(provider_session_id=provider_session_id).all().items
        return results[0] if results else None

    def find_by_reference(self, checkout_ref: str) -> CheckoutSession | None:
        if not checkout_ref:
            return None
        results = self._dao.query.filter(id=checkout_ref).all().items
        return results[0] if results else None

    def find_for_event(self, checkout_ref: str | None, provider_session_id: str | None) -> CheckoutSession | None:
        """Internal reference first, provider session id as fallback."""
        return self.find_by_reference(checkout_ref) or self.find_by_provider_session(provider_session_id)
