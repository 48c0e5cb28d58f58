"""Configurable fake payment gateway for development and testing.

Simulates hosted checkout without any external calls. Sessions are kept in
memory; tests (or the /payments/gateway endpoints outside production) mark
them paid and build webhook payloads for them. Webhooks are accepted only
with the signature ``test-signature``.
"""

import json
from uuid import uuid4

from payments.gateway.port import (
    PAID,
    CheckoutRequest,
    GatewayError,
    HostedSession,
    InvalidSignature,
    PaymentGateway,
    VerifiedSession,
    WebhookEvent,
    decode_metadata,
)

TEST_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    """Configurable fake hosted-checkout gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Checkout session could not be created"
        self.calls: list[dict] = []
        self.sessions: dict[str, dict] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Checkout session could not be created") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _create_session(self, request: CheckoutRequest) -> HostedSession:
        self.calls.append({"method": "create_session", "request": request})

        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

        session_id = f"cs_test_{uuid4().hex[:24]}"
        total = sum(item.unit_price * item.quantity for item in request.line_items)
        self.sessions[session_id] = {
            "request": request,
            "payment_status": "unpaid",
            "payment_intent": None,
            "amount_total": max(0, total + request.shipping_amount - request.promo_discount),
        }
        return HostedSession(session_id=session_id, url=f"https://checkout.fake/pay/{session_id}")

    def mark_paid(self, session_id: str) -> str:
        """Simulate the customer completing payment; returns the payment intent id."""
        session = self.sessions[session_id]
        session["payment_status"] = PAID
        session["payment_intent"] = f"pi_test_{uuid4().hex[:24]}"
        return session["payment_intent"]

    def retrieve_session(self, session_id: str) -> VerifiedSession:
        self.calls.append({"method": "retrieve_session", "session_id": session_id})

        session = self.sessions.get(session_id)
        if session is None:
            raise GatewayError(f"No such checkout session: {session_id}")

        request = session["request"]
        return decode_metadata(
            request.metadata(),
            session_id=session_id,
            payment_status=session["payment_status"],
            customer_email=request.customer_email,
            total_amount=session["amount_total"],
            payment_intent_id=session["payment_intent"],
        )

    def webhook_payload(self, session_id: str, event_type: str, event_id: str | None = None) -> bytes:
        """Build a provider-shaped webhook body for a known session."""
        session = self.sessions[session_id]
        request = session["request"]
        body = {
            "id": event_id or f"evt_test_{uuid4().hex[:24]}",
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id,
                    "client_reference_id": request.checkout_ref,
                    "payment_intent": session["payment_intent"],
                    "payment_status": session["payment_status"],
                    "metadata": {"checkout_ref": request.checkout_ref},
                }
            },
        }
        return json.dumps(body).encode("utf-8")

    def construct_webhook_event(self, payload: bytes, signature: str) -> WebhookEvent:
        self.calls.append({"method": "construct_webhook_event", "signature": signature})

        if signature != TEST_SIGNATURE:
            raise InvalidSignature("Webhook signature mismatch")
        try:
            body = json.loads(payload)
        except ValueError as exc:
            raise InvalidSignature("Webhook payload is not valid JSON") from exc
        return WebhookEvent.from_payload(body)
