"""Tests for the checkout result lookup used by the success page."""

import pytest
from ordering.checkout.orchestrator import CheckoutOrchestrator
from ordering.checkout.result import get_checkout_result
from ordering.checkout.settlement import WebhookSettlementHandler
from ordering.checkout.validation import CheckoutForm
from payments.gateway.fake_adapter import TEST_SIGNATURE
from payments.gateway.port import SESSION_EXPIRED
from protean.exceptions import ObjectNotFoundError, ValidationError

FORM = CheckoutForm(name="Kari Nordmann", email="kari@example.no", delivery_method="pickup-oslo")


@pytest.fixture()
def redirect(config, gateway, cart, compact):
    cart.add_item(compact)
    return CheckoutOrchestrator(config, gateway, "https://bsclimbing.no").submit(FORM, cart)


class TestCheckoutResult:
    def test_pending(self, redirect):
        result = get_checkout_result(redirect.session_id)
        assert result.status == "pending"
        assert result.order is None
        assert result.message == "Payment is being confirmed."

    def test_paid(self, gateway, mailbox, redirect):
        gateway.mark_paid(redirect.session_id)
        WebhookSettlementHandler(gateway).settle_paid(redirect.session_id, checkout_ref=redirect.checkout_ref)

        result = get_checkout_result(redirect.session_id)

        assert result.status == "paid"
        assert result.order.provider_session_id == redirect.session_id
        assert result.message is None

    def test_expired(self, gateway, redirect):
        WebhookSettlementHandler(gateway).handle(
            gateway.webhook_payload(redirect.session_id, SESSION_EXPIRED), TEST_SIGNATURE
        )

        result = get_checkout_result(redirect.session_id)

        assert result.status == "expired"
        assert result.message == "Stripe session expired before payment."

    def test_missing_session_id(self):
        with pytest.raises(ValidationError):
            get_checkout_result("")

    def test_unknown_session(self):
        with pytest.raises(ObjectNotFoundError):
            get_checkout_result("cs_test_unknown")
