"""Payment gateway port (abstract interface).

Defines the hosted-checkout contract every adapter implements, so the
checkout flow can run against FakeGateway in development and tests and
against StripeGateway in production. All amounts crossing this interface
are whole kroner; adapters convert to the provider's minor units.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from protean.exceptions import ValidationError

SESSION_COMPLETED = "checkout.session.completed"
SESSION_EXPIRED = "checkout.session.expired"

PAID = "paid"


class GatewayError(Exception):
    """The provider rejected or failed a request. The message is for logs only."""


class PaymentMethodUnavailable(GatewayError):
    """The requested payment method cannot be used for this session."""


class PaymentNotCompleted(Exception):
    """The provider reports the session as not paid."""

    def __init__(self, session_id: str, payment_status: str | None) -> None:
        super().__init__(f"Checkout session {session_id} is not paid (status: {payment_status})")
        self.session_id = session_id
        self.payment_status = payment_status


class InvalidSignature(Exception):
    """A webhook payload failed signature verification."""


@dataclass(frozen=True)
class SessionLineItem:
    name: str
    unit_price: int  # kroner
    quantity: int
    product_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "price": self.unit_price,
            "product_id": self.product_id,
        }


@dataclass(frozen=True)
class CheckoutRequest:
    """Everything needed to open a hosted payment page."""

    checkout_ref: str
    customer_email: str
    customer_name: str
    line_items: list[SessionLineItem]
    success_url: str
    cancel_url: str
    delivery_method: str
    customer_phone: str | None = None
    pickup_location: str | None = None
    shipping_address: dict | None = None
    shipping_amount: int = 0
    promo_discount: int = 0
    promo_code: str | None = None
    payment_method: str = "card"

    def metadata(self) -> dict[str, str]:
        """Checkout context embedded in the provider session, all values as strings."""
        return {
            "checkout_ref": self.checkout_ref,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone or "",
            "delivery_method": self.delivery_method,
            "pickup_location": self.pickup_location or "",
            "shipping_address": json.dumps(self.shipping_address) if self.shipping_address else "",
            "promo_code": self.promo_code or "",
            "promo_discount_nok": str(self.promo_discount),
            "shipping_amount_nok": str(self.shipping_amount),
            "items_json": json.dumps([item.to_dict() for item in self.line_items], separators=(",", ":")),
        }


@dataclass(frozen=True)
class HostedSession:
    session_id: str
    url: str


@dataclass(frozen=True)
class VerifiedSession:
    """Authoritative session data as recorded by the provider."""

    session_id: str
    payment_status: str
    customer_email: str | None
    customer_name: str | None = None
    customer_phone: str | None = None
    checkout_ref: str | None = None
    delivery_method: str | None = None
    pickup_location: str | None = None
    shipping_address: dict | None = None
    promo_code: str | None = None
    promo_discount: int = 0
    shipping_amount: int = 0
    total_amount: float = 0
    items: list[dict] = field(default_factory=list)
    payment_intent_id: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID


@dataclass(frozen=True)
class WebhookEvent:
    event_id: str
    event_type: str
    session_id: str | None = None
    client_reference_id: str | None = None
    checkout_ref: str | None = None
    payment_intent_id: str | None = None
    payment_status: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "WebhookEvent":
        """Read the fields settlement needs from a provider event body."""
        session = (payload.get("data") or {}).get("object") or {}
        metadata = session.get("metadata") or {}
        return cls(
            event_id=payload.get("id") or "",
            event_type=payload.get("type") or "",
            session_id=session.get("id"),
            client_reference_id=session.get("client_reference_id"),
            checkout_ref=metadata.get("checkout_ref"),
            payment_intent_id=session.get("payment_intent"),
            payment_status=session.get("payment_status"),
        )

    @property
    def reference(self) -> str | None:
        """Internal checkout reference carried by the session, if any."""
        return self.client_reference_id or self.checkout_ref


def decode_metadata(
    metadata: dict,
    session_id: str,
    payment_status: str,
    customer_email: str | None = None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    total_amount: float = 0,
    payment_intent_id: str | None = None,
) -> VerifiedSession:
    """Rebuild checkout context from metadata written by ``CheckoutRequest.metadata``.

    Customer name and phone fall back to what the provider collected itself.
    """
    shipping_address = metadata.get("shipping_address")
    items_json = metadata.get("items_json")
    return VerifiedSession(
        session_id=session_id,
        payment_status=payment_status,
        customer_email=customer_email,
        customer_name=metadata.get("customer_name") or customer_name,
        customer_phone=metadata.get("customer_phone") or customer_phone,
        checkout_ref=metadata.get("checkout_ref"),
        delivery_method=metadata.get("delivery_method"),
        pickup_location=metadata.get("pickup_location") or None,
        shipping_address=json.loads(shipping_address) if shipping_address else None,
        promo_code=metadata.get("promo_code") or None,
        promo_discount=int(metadata.get("promo_discount_nok") or 0),
        shipping_amount=int(metadata.get("shipping_amount_nok") or 0),
        total_amount=total_amount,
        items=json.loads(items_json) if items_json else [],
        payment_intent_id=payment_intent_id,
    )


class PaymentGateway(ABC):
    """Abstract hosted-checkout gateway."""

    def create_session(self, request: CheckoutRequest) -> HostedSession:
        """Open a hosted payment session.

        Raises:
            ValidationError: the cart is empty or the customer email is missing.
            ConfigurationError: the provider credential is absent.
            GatewayError: the provider refused the session.
        """
        if not request.line_items:
            raise ValidationError({"items": ["Cannot start a payment for an empty cart"]})
        if not request.customer_email:
            raise ValidationError({"customer_email": ["Customer email is required"]})
        return self._create_session(request)

    def verify_session(self, session_id: str) -> VerifiedSession:
        """Fetch a session and insist that it is paid.

        Raises:
            PaymentNotCompleted: the provider reports any status other than paid.
        """
        session = self.retrieve_session(session_id)
        if not session.is_paid:
            raise PaymentNotCompleted(session_id, session.payment_status)
        return session

    @abstractmethod
    def _create_session(self, request: CheckoutRequest) -> HostedSession: ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> VerifiedSession:
        """Fetch a session as the provider currently records it."""
        ...

    @abstractmethod
    def construct_webhook_event(self, payload: bytes, signature: str) -> WebhookEvent:
        """Verify a webhook signature and parse the event.

        Raises:
            InvalidSignature: the payload is not authentically from the provider.
            ConfigurationError: the webhook secret is absent.
        """
        ...
