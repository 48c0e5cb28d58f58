"""Tests for webhook settlement: idempotent order creation, expiry, signature checks."""

import json
from unittest.mock import patch

import pytest
from ordering.checkout.orchestrator import CheckoutOrchestrator
from ordering.checkout.session import EXPIRED_MESSAGE, CheckoutSession, CheckoutStatus
from ordering.checkout.settlement import WebhookSettlementHandler
from ordering.checkout.validation import CheckoutForm
from ordering.order import audit
from ordering.order.order import Order
from payments.gateway.fake_adapter import TEST_SIGNATURE
from payments.gateway.port import SESSION_COMPLETED, SESSION_EXPIRED, InvalidSignature
from protean import current_domain
from protean.exceptions import ValidationError

FORM = CheckoutForm(
    name="Kari Nordmann",
    email="kari@example.no",
    delivery_method="pickup-gneis",
)


@pytest.fixture()
def redirect(config, gateway, cart, compact):
    """A pending checkout with an open fake provider session."""
    cart.add_item(compact)
    return CheckoutOrchestrator(config, gateway, "https://bsclimbing.no").submit(FORM, cart)


@pytest.fixture()
def handler(gateway):
    return WebhookSettlementHandler(gateway)


def _orders():
    return current_domain.repository_for(Order)._dao.query.all().items


def _checkout(redirect):
    return current_domain.repository_for(CheckoutSession).get(redirect.checkout_ref)


def _order_repository_class():
    """The repository class the domain actually hands out for Order."""
    return type(current_domain.repository_for(Order))


class TestSessionCompleted:
    def test_creates_order(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)

        outcome = handler.handle(gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED), TEST_SIGNATURE)

        assert outcome.action == "settled"
        assert outcome.created is True
        [order] = _orders()
        assert str(order.id) == outcome.order_id
        assert order.status == "new"
        assert order.provider_session_id == redirect.session_id
        assert order.provider_payment_intent_id.startswith("pi_test_")
        assert order.pickup_location == "Gneis Lilleaker"
        assert order.total_amount == 39900
        assert order.production_number == 1

    def test_links_checkout_session(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        outcome = handler.handle(gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED), TEST_SIGNATURE)

        checkout = _checkout(redirect)
        assert checkout.status == CheckoutStatus.PAID.value
        assert str(checkout.order_id) == outcome.order_id
        assert checkout.confirmation_email_sent_at is not None

    def test_sends_confirmation(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        outcome = handler.handle(gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED), TEST_SIGNATURE)

        assert outcome.confirmation_sent is True
        assert mailbox.sent_emails[0]["to"] == "kari@example.no"

    def test_audit_entry(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        payload = gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED, event_id="evt_001")
        outcome = handler.handle(payload, TEST_SIGNATURE)

        [entry] = audit.events_for_order(outcome.order_id)
        assert entry.event_type == audit.SESSION_COMPLETED
        assert entry.provider_event_id == "evt_001"
        assert entry.provider_session_id == redirect.session_id
        assert entry.payload_data["created"] is True

    def test_found_by_provider_session_without_reference(self, handler, mailbox, redirect):
        payload = json.dumps(
            {
                "id": "evt_002",
                "type": SESSION_COMPLETED,
                "data": {"object": {"id": redirect.session_id, "payment_status": "paid", "metadata": {}}},
            }
        ).encode()

        outcome = handler.handle(payload, TEST_SIGNATURE)

        assert outcome.action == "settled"
        assert len(_orders()) == 1

    def test_unknown_session_ignored(self, handler, gateway):
        payload = json.dumps(
            {"id": "evt_003", "type": SESSION_COMPLETED, "data": {"object": {"id": "cs_test_unknown"}}}
        ).encode()

        outcome = handler.handle(payload, TEST_SIGNATURE)

        assert outcome.action == "ignored"
        assert _orders() == []


class TestIdempotency:
    def test_duplicate_delivery_creates_one_order(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        payload = gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED, event_id="evt_dup")

        first = handler.handle(payload, TEST_SIGNATURE)
        second = handler.handle(payload, TEST_SIGNATURE)

        assert second.order_id == first.order_id
        assert second.created is False
        assert len(_orders()) == 1

    def test_confirmation_sent_once(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        payload = gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED)

        handler.handle(payload, TEST_SIGNATURE)
        second = handler.handle(payload, TEST_SIGNATURE)

        assert second.confirmation_sent is False
        assert len(mailbox.sent_emails) == 1

    def test_failed_confirmation_retried_on_redelivery(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        payload = gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED)

        mailbox.configure(should_succeed=False)
        first = handler.handle(payload, TEST_SIGNATURE)
        mailbox.configure(should_succeed=True)
        second = handler.handle(payload, TEST_SIGNATURE)

        assert first.confirmation_sent is False
        assert second.confirmation_sent is True
        assert len(mailbox.sent_emails) == 1

    def test_concurrent_insert_resolves_to_existing_order(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        payload = gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED)
        winner = handler.handle(payload, TEST_SIGNATURE)
        existing = current_domain.repository_for(Order).get(winner.order_id)

        # The lookup misses (the other delivery has not committed yet), so the
        # real insert hits the unique provider_session_id check
        lookup = patch.object(_order_repository_class(), "find_by_provider_session", side_effect=[None, existing])
        with lookup as find:
            loser = handler.settle_paid(provider_session_id=redirect.session_id, checkout_ref=redirect.checkout_ref)

        assert find.call_count == 2
        assert loser.order_id == winner.order_id
        assert loser.created is False
        assert len(_orders()) == 1

    def test_conflicting_insert_is_rejected_by_storage(self, order_factory):
        order_factory(production_number=1, provider_session_id="cs_test_dup")
        repo = current_domain.repository_for(Order)
        duplicate = Order.place(
            provider_session_id="cs_test_dup",
            production_number=2,
            customer={"name": "Ola Nordmann", "email": "ola@example.no", "phone": None},
            delivery_method="pickup-gneis",
            pickup_location="Gneis Lilleaker",
            line_items=[{"name": "Compact", "quantity": 1, "price": 39900, "product_id": "compact"}],
            amounts={"subtotal": 39900, "shipping": 0, "total": 39900, "promo_discount": 0},
        )

        with patch.object(_order_repository_class(), "find_by_provider_session", return_value=None):
            with pytest.raises(ValidationError) as exc:
                repo.add_once(duplicate)

        assert "provider_session_id" in exc.value.messages
        assert len(_orders()) == 1

    def test_other_validation_errors_propagate(self, handler, redirect):
        repo_class = _order_repository_class()
        rejection = ValidationError({"customer_email": ["bad"]})
        with (
            patch.object(repo_class, "find_by_provider_session", return_value=None),
            patch.object(repo_class, "add", side_effect=rejection) as add,
            pytest.raises(ValidationError) as exc,
        ):
            handler.settle_paid(provider_session_id=redirect.session_id, checkout_ref=redirect.checkout_ref)

        assert add.called
        assert exc.value.messages == {"customer_email": ["bad"]}


class TestSessionExpired:
    def test_marks_session_expired(self, handler, gateway, redirect):
        outcome = handler.handle(gateway.webhook_payload(redirect.session_id, SESSION_EXPIRED), TEST_SIGNATURE)

        assert outcome.action == "expired"
        checkout = _checkout(redirect)
        assert checkout.status == CheckoutStatus.EXPIRED.value
        assert checkout.error_message == EXPIRED_MESSAGE
        assert _orders() == []

    def test_expiry_after_payment_keeps_paid(self, handler, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        handler.handle(gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED), TEST_SIGNATURE)
        handler.handle(gateway.webhook_payload(redirect.session_id, SESSION_EXPIRED), TEST_SIGNATURE)

        assert _checkout(redirect).status == CheckoutStatus.PAID.value


class TestOtherEvents:
    def test_unrelated_event_ignored(self, handler):
        payload = json.dumps({"id": "evt_004", "type": "payment_intent.created", "data": {"object": {}}}).encode()
        assert handler.handle(payload, TEST_SIGNATURE).action == "ignored"


class TestSignature:
    def test_bad_signature_rejected_without_side_effects(self, handler, gateway, redirect):
        gateway.mark_paid(redirect.session_id)
        payload = gateway.webhook_payload(redirect.session_id, SESSION_COMPLETED)

        with pytest.raises(InvalidSignature):
            handler.handle(payload, "forged")

        assert _orders() == []
        assert _checkout(redirect).status == CheckoutStatus.PENDING.value
