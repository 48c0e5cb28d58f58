"""Tests for the free checkout path: a promo that covers the whole total."""

import re

import pytest
from ordering.checkout.orchestrator import CheckoutOrchestrator, CheckoutUnavailable, FreeOrderPlaced
from ordering.checkout.session import CheckoutSession
from ordering.checkout.validation import Address, CheckoutForm
from ordering.order import audit
from ordering.order.order import Order
from ordering.order.placement import PlaceFreeOrder, free_order_session_id
from ordering.settings.config import MaintenanceMode, ShopConfig
from protean import current_domain
from protean.exceptions import ValidationError

SITE_URL = "https://bsclimbing.no"


def _form(**overrides):
    fields = {
        "name": "Kari Nordmann",
        "email": "kari@example.no",
        "delivery_method": "pickup-gneis",
        "digital_consent": True,
    }
    fields.update(overrides)
    return CheckoutForm(**fields)


@pytest.fixture()
def orchestrator(config, gateway):
    return CheckoutOrchestrator(config, gateway, SITE_URL)


class TestFreeOrderSessionId:
    def test_format(self):
        assert re.fullmatch(r"free_order_\d{13}_[0-9a-f]{8}", free_order_session_id())

    def test_unique(self):
        assert len({free_order_session_id() for _ in range(50)}) == 50


class TestDigitalFreeOrder:
    def test_full_discount_places_order_without_payment(self, orchestrator, gateway, mailbox, cart, stl_file):
        cart.add_item(stl_file)
        cart.apply_promo_code("TESTMEG")

        outcome = orchestrator.submit(_form(delivery_method=None), cart)

        assert isinstance(outcome, FreeOrderPlaced)
        assert gateway.calls == []
        assert current_domain.repository_for(CheckoutSession)._dao.query.all().total == 0

        order = current_domain.repository_for(Order).get(outcome.order_id)
        assert order.status == "new"
        assert order.total_amount == 0
        assert order.subtotal_amount == 19900
        assert order.promo_discount_amount == 19900
        assert order.promo_code == "TESTMEG"
        assert order.delivery_method == "digital"
        assert order.provider_session_id.startswith("free_order_")
        assert order.production_number == 1

    def test_config_snapshot_recorded(self, orchestrator, mailbox, cart, stl_file):
        cart.add_item(stl_file)
        cart.apply_promo_code("TESTMEG")

        outcome = orchestrator.submit(_form(), cart)

        snapshot = current_domain.repository_for(Order).get(outcome.order_id).snapshot_data
        assert snapshot["version"] == 1
        assert snapshot["promo_code"] == "TESTMEG"
        assert snapshot["promo_discount"] == 19900
        assert snapshot["items"][0]["type"] == "file"
        assert snapshot["items"][0]["unit_price"] == 199

    def test_cart_cleared(self, orchestrator, mailbox, cart, stl_file):
        cart.add_item(stl_file)
        cart.apply_promo_code("TESTMEG")
        orchestrator.submit(_form(), cart)
        assert cart.items == []
        assert cart.promo is None

    def test_confirmation_sent(self, orchestrator, mailbox, cart, stl_file):
        cart.add_item(stl_file)
        cart.apply_promo_code("TESTMEG")
        outcome = orchestrator.submit(_form(), cart)

        assert len(mailbox.sent_emails) == 1
        email = mailbox.sent_emails[0]
        assert email["to"] == "kari@example.no"
        assert email["subject"] == f"Ordrebekreftelse #{outcome.order_id[:8].upper()}"

    def test_audit_entry(self, orchestrator, mailbox, cart, stl_file):
        cart.add_item(stl_file)
        cart.apply_promo_code("TESTMEG")
        outcome = orchestrator.submit(_form(), cart)

        entries = audit.events_for_order(outcome.order_id)
        assert [entry.event_type for entry in entries] == [audit.FREE_ORDER_PLACED]


class TestPhysicalFreeOrder:
    def test_shipping_included_in_discount(self, orchestrator, mailbox, cart, compact):
        cart.add_item(compact)
        cart.apply_promo_code("TESTMEG")
        address = Address(line1="Storgata 1", postal_code="0155", city="Oslo")

        outcome = orchestrator.submit(_form(delivery_method="shipping", address=address), cart)

        order = current_domain.repository_for(Order).get(outcome.order_id)
        assert order.shipping_amount == 7900
        assert order.promo_discount_amount == 47800
        assert order.total_amount == 0
        assert order.shipping_address.postal_code == "0155"
        assert order.pickup_location is None

    def test_pickup_location_recorded(self, orchestrator, mailbox, cart, compact):
        cart.add_item(compact)
        cart.apply_promo_code("TESTMEG")
        outcome = orchestrator.submit(_form(delivery_method="pickup-oslo"), cart)

        order = current_domain.repository_for(Order).get(outcome.order_id)
        assert order.pickup_location == "Oslo Klatresenter"
        assert order.shipping_address is None

    def test_production_numbers_increase(self, orchestrator, mailbox, cart, compact):
        numbers = []
        for _ in range(3):
            cart.add_item(compact)
            cart.apply_promo_code("TESTMEG")
            outcome = orchestrator.submit(_form(), cart)
            numbers.append(current_domain.repository_for(Order).get(outcome.order_id).production_number)
        assert numbers == [1, 2, 3]


class TestEmailFailure:
    def test_failed_email_keeps_order(self, orchestrator, mailbox, cart, stl_file):
        mailbox.configure(should_succeed=False)
        cart.add_item(stl_file)
        cart.apply_promo_code("TESTMEG")

        outcome = orchestrator.submit(_form(), cart)

        assert current_domain.repository_for(Order).get(outcome.order_id) is not None
        assert cart.items == []

    def test_raising_email_keeps_order(self, orchestrator, mailbox, cart, stl_file):
        mailbox.configure(should_raise=True)
        cart.add_item(stl_file)
        cart.apply_promo_code("TESTMEG")

        outcome = orchestrator.submit(_form(), cart)

        assert current_domain.repository_for(Order).get(outcome.order_id) is not None


class TestRejectedCheckout:
    def test_validation_failure_places_nothing(self, orchestrator, mailbox, cart, stl_file):
        cart.add_item(stl_file)
        cart.apply_promo_code("TESTMEG")

        with pytest.raises(ValidationError):
            orchestrator.submit(_form(digital_consent=False), cart)

        assert current_domain.repository_for(Order)._dao.query.all().total == 0
        assert len(cart.items) == 1
        assert mailbox.sent_emails == []

    def test_maintenance_mode_refuses_before_validation(self, gateway, cart):
        config = ShopConfig(maintenance=MaintenanceMode(enabled=True, message="Stengt for vedlikehold"))
        orchestrator = CheckoutOrchestrator(config, gateway, SITE_URL)

        with pytest.raises(CheckoutUnavailable) as exc:
            orchestrator.submit(_form(name=""), cart)

        assert exc.value.message == "Stengt for vedlikehold"
        assert gateway.calls == []


class TestPlaceFreeOrderCommand:
    def test_handler_forces_zero_total(self):
        command = PlaceFreeOrder(
            customer_name="Ola Nordmann",
            customer_email="ola@example.no",
            delivery_method="pickup-gneis",
            pickup_location="Gneis Lilleaker",
            line_items='[{"name": "Compact", "quantity": 1, "price": 39900, "product_id": "compact"}]',
            subtotal_amount=39900,
            promo_code="TESTMEG",
            promo_discount_amount=39900,
        )
        order_id = current_domain.process(command, asynchronous=False)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.total_amount == 0
        assert order.customer_name == "Ola Nordmann"
