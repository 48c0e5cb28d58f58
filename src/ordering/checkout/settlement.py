"""Webhook settlement — reconciles provider events with pending checkout sessions.

Deliveries are at-least-once, so every step tolerates repeats:
    - the order insert is idempotent on provider_session_id
      (``OrderRepository.add_once``), which also covers concurrent deliveries;
    - the checkout session only moves to paid once;
    - the confirmation email is guarded by ``confirmation_email_sent_at``.
An exception escaping ``handle`` must reach the provider as a server error
so that it retries; work already applied is not repeated on the retry.
"""

from dataclasses import dataclass

import structlog
from notifications.confirmation import send_order_confirmation
from payments.gateway.port import SESSION_COMPLETED, SESSION_EXPIRED, PaymentGateway, WebhookEvent
from protean.utils.globals import current_domain

from ordering.checkout.session import EXPIRED_MESSAGE, CheckoutSession
from ordering.order import audit
from ordering.order.confirmation import confirmation_for
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SettlementOutcome:
    action: str  # settled | expired | ignored
    order_id: str | None = None
    created: bool = False
    confirmation_sent: bool = False


class WebhookSettlementHandler:
    def __init__(self, gateway: PaymentGateway) -> None:
        self.gateway = gateway

    def handle(self, payload: bytes, signature: str) -> SettlementOutcome:
        """Authenticate a raw webhook delivery and act on it.

        Raises:
            InvalidSignature: before anything is read or written.
        """
        event = self.gateway.construct_webhook_event(payload, signature)
        logger.info("Webhook event received", event_id=event.event_id, event_type=event.event_type)

        if event.event_type == SESSION_COMPLETED:
            return self.settle_paid(
                provider_session_id=event.session_id,
                checkout_ref=event.reference,
                payment_intent_id=event.payment_intent_id,
                event_id=event.event_id,
            )
        if event.event_type == SESSION_EXPIRED:
            return self.expire(event)

        logger.info("Ignoring webhook event type", event_type=event.event_type)
        return SettlementOutcome(action="ignored")

    def _find_session(self, checkout_ref, provider_session_id) -> CheckoutSession | None:
        checkout = current_domain.repository_for(CheckoutSession).find_for_event(checkout_ref, provider_session_id)
        if checkout is None:
            logger.warning(
                "No checkout session for webhook",
                checkout_ref=checkout_ref,
                provider_session_id=provider_session_id,
            )
        return checkout

    def settle_paid(self, provider_session_id, checkout_ref=None, payment_intent_id=None, event_id=None):
        checkout = self._find_session(checkout_ref, provider_session_id)
        if checkout is None:
            return SettlementOutcome(action="ignored")

        provider_session_id = provider_session_id or checkout.provider_session_id
        orders = current_domain.repository_for(Order)
        order, created = orders.add_once(
            Order.place(
                provider_session_id=provider_session_id,
                production_number=orders.next_production_number(),
                provider_payment_intent_id=payment_intent_id,
                **checkout.order_details(),
            )
        )

        sessions = current_domain.repository_for(CheckoutSession)
        if checkout.mark_paid(order.id, provider_session_id=provider_session_id, payment_intent_id=payment_intent_id):
            sessions.add(checkout)

        audit.log_order_event(
            audit.SESSION_COMPLETED,
            order_id=str(order.id),
            checkout_session_id=checkout.checkout_ref,
            provider_event_id=event_id,
            provider_session_id=provider_session_id,
            payload={"created": created, "payment_intent": payment_intent_id},
        )

        confirmation_sent = False
        if checkout.confirmation_email_sent_at is None:
            result = send_order_confirmation(confirmation_for(order))
            if result.sent:
                checkout.record_confirmation_sent()
                sessions.add(checkout)
                confirmation_sent = True

        logger.info(
            "Checkout session settled",
            order_id=str(order.id),
            provider_session_id=provider_session_id,
            created=created,
            confirmation_sent=confirmation_sent,
        )
        return SettlementOutcome(
            action="settled",
            order_id=str(order.id),
            created=created,
            confirmation_sent=confirmation_sent,
        )

    def expire(self, event: WebhookEvent) -> SettlementOutcome:
        checkout = self._find_session(event.reference, event.session_id)
        if checkout is None:
            return SettlementOutcome(action="ignored")

        if checkout.mark_expired(EXPIRED_MESSAGE):
            current_domain.repository_for(CheckoutSession).add(checkout)

        audit.log_order_event(
            audit.SESSION_EXPIRED,
            checkout_session_id=checkout.checkout_ref,
            provider_event_id=event.event_id,
            provider_session_id=event.session_id,
        )
        logger.info("Checkout session expired", checkout_ref=checkout.checkout_ref)
        return SettlementOutcome(action="expired")
