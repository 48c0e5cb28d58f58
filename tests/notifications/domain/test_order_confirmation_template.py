"""Tests for the Norwegian order confirmation template."""

from notifications.templates import get_template
from notifications.templates.order_confirmation import OrderConfirmationTemplate, order_reference

CONTEXT = {
    "order_id": "3f2a9c1e-7b44-4d2f-9a10-5c8e2b7d9f01",
    "customer_name": "Kari Nordmann",
    "items": [
        {"name": "Compact", "quantity": 2, "price": 399},
        {"name": "STL-fil", "quantity": 1, "price": 199},
    ],
    "delivery_method": "shipping",
    "shipping_address": {"line1": "Storgata 1", "line2": "H0201", "postal_code": "0155", "city": "Oslo"},
    "subtotal": 997,
    "shipping": 79,
    "promo_discount": 100,
    "total": 976,
}


class TestOrderReference:
    def test_first_eight_characters_upper_case(self):
        assert order_reference("3f2a9c1e-7b44") == "3F2A9C1E"


class TestRender:
    def test_subject(self):
        assert OrderConfirmationTemplate.render(CONTEXT)["subject"] == "Ordrebekreftelse #3F2A9C1E"

    def test_body_lists_items_and_totals(self):
        body = OrderConfirmationTemplate.render(CONTEXT)["body"]
        assert "Hei Kari Nordmann," in body
        assert "Compact x2  798,-" in body
        assert "Delsum: 997,-" in body
        assert "Frakt: 79,-" in body
        assert "Rabatt: -100,-" in body
        assert "Totalt: 976,-" in body

    def test_shipping_address(self):
        body = OrderConfirmationTemplate.render(CONTEXT)["body"]
        assert "Leveringsmetode: Hjemlevering" in body
        assert "H0201" in body
        assert "0155 Oslo" in body

    def test_pickup(self):
        context = {**CONTEXT, "delivery_method": "pickup-gneis", "pickup_location": "Gneis Lilleaker", "shipping": 0}
        body = OrderConfirmationTemplate.render(context)["body"]
        assert "Leveringsmetode: Henting" in body
        assert "Gneis Lilleaker" in body
        assert "Frakt:" not in body

    def test_digital(self):
        context = {**CONTEXT, "delivery_method": "digital", "shipping_address": None, "promo_discount": 0}
        body = OrderConfirmationTemplate.render(context)["body"]
        assert "Leveringsmetode: Digital levering" in body
        assert "Rabatt" not in body

    def test_thousands_separator(self):
        context = {**CONTEXT, "total": 1234}
        assert "Totalt: 1 234,-" in OrderConfirmationTemplate.render(context)["body"]

    def test_html_escapes_customer_input(self):
        context = {**CONTEXT, "customer_name": "<script>alert(1)</script>"}
        html_body = OrderConfirmationTemplate.render(context)["html_body"]
        assert "<script>" not in html_body
        assert "&lt;script&gt;" in html_body


class TestRegistry:
    def test_lookup(self):
        assert get_template("order_confirmation") is OrderConfirmationTemplate
