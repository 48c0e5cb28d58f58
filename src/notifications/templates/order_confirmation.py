"""Order confirmation template — sent once an order is persisted.

Context keys: order_id, customer_name, items ([{name, quantity, price}]),
delivery_method, pickup_location, shipping_address, subtotal, shipping,
promo_discount, total. Amounts are kroner.
"""

from html import escape

from shared.money import format_kroner

SHOP_NAME = "BS Climbing"
CONTACT_EMAIL = "post@bsclimbing.no"
RETURN_ADDRESS = "Åstadlia 18, 1396 Billingstad, Norway"


def order_reference(order_id: str) -> str:
    return str(order_id)[:8].upper()


def _delivery_lines(context: dict) -> list[str]:
    address = context.get("shipping_address")
    if context.get("delivery_method") == "shipping" and address:
        lines = ["Leveringsmetode: Hjemlevering", address["line1"]]
        if address.get("line2"):
            lines.append(address["line2"])
        lines.append(f"{address['postal_code']} {address['city']}")
        return lines
    if context.get("pickup_location"):
        return ["Leveringsmetode: Henting", context["pickup_location"]]
    return ["Leveringsmetode: Digital levering"]


def _total_lines(context: dict) -> list[tuple[str, str]]:
    lines = [("Delsum", format_kroner(context.get("subtotal", 0)))]
    if context.get("shipping", 0) > 0:
        lines.append(("Frakt", format_kroner(context["shipping"])))
    if context.get("promo_discount", 0) > 0:
        lines.append(("Rabatt", f"-{format_kroner(context['promo_discount'])}"))
    lines.append(("Totalt", format_kroner(context.get("total", 0))))
    return lines


class OrderConfirmationTemplate:
    notification_type = "order_confirmation"

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "")
        name = context.get("customer_name", "")
        items = context.get("items") or []

        item_lines = [
            f"  {item['name']} x{item['quantity']}  {format_kroner(item['price'] * item['quantity'])}"
            for item in items
        ]
        total_lines = [f"  {label}: {amount}" for label, amount in _total_lines(context)]

        body = "\n".join(
            [
                f"Hei {name},",
                "",
                "Takk for bestillingen! Vi har mottatt ordren din og setter i gang med produksjonen snart.",
                "",
                f"Ordrenummer: {order_id}",
                "",
                "Produkter:",
                *item_lines,
                "",
                *total_lines,
                "",
                *_delivery_lines(context),
                "",
                "Hva skjer nå?",
                "  1. Vi gjennomgår bestillingen din",
                "  2. Grepet produseres spesialtilpasset dine mål",
                "  3. Du mottar en e-post når ordren sendes eller er klar til henting",
                "",
                f"Returadresse: {RETURN_ADDRESS}. Retur avtales alltid på forhånd.",
                f"Har du spørsmål? Kontakt oss på {CONTACT_EMAIL}",
                "",
                SHOP_NAME,
            ]
        )

        rows = "".join(
            f"<tr><td>{escape(str(item['name']))}</td><td>{item['quantity']}</td>"
            f"<td>{format_kroner(item['price'] * item['quantity'])}</td></tr>"
            for item in items
        )
        totals = "".join(f"<p>{label}: <strong>{amount}</strong></p>" for label, amount in _total_lines(context))
        delivery = "".join(f"<p>{escape(line)}</p>" for line in _delivery_lines(context))
        html_body = (
            f"<html><body><h1>{SHOP_NAME}</h1>"
            f"<h2>Takk for bestillingen!</h2><p>Hei {escape(name)}, vi har mottatt din bestilling.</p>"
            f"<p>Ordrenummer: <code>{escape(str(order_id))}</code></p>"
            f"<table><thead><tr><th>Produkt</th><th>Antall</th><th>Pris</th></tr></thead><tbody>{rows}</tbody></table>"
            f"{totals}<h3>Leveringsinformasjon</h3>{delivery}"
            f"<p>Har du spørsmål? Kontakt oss på {CONTACT_EMAIL}</p></body></html>"
        )

        return {
            "subject": f"Ordrebekreftelse #{order_reference(order_id)}",
            "body": body,
            "html_body": html_body,
        }
