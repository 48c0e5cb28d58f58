"""Checkout orchestrator — turns a validated cart into an order or a payment page.

Two paths:
    free  — promo discount covers the whole total: the order is placed
            directly, a confirmation is attempted and the cart is emptied.
    paid  — a pending CheckoutSession is stored, the gateway opens a hosted
            payment page and the customer is redirected there. The cart is
            kept until the customer returns through ``complete``.

The steps are not wrapped in one transaction. A failed confirmation email
never undoes an order; a failed payment page marks the session failed and
leaves the cart untouched for a retry.
"""

import json
from dataclasses import dataclass

import structlog
from notifications.confirmation import send_order_confirmation
from payments.gateway.port import CheckoutRequest, PaymentGateway, SessionLineItem
from protean.utils.globals import current_domain
from shared.money import to_ore

from ordering.cart.pricing import (
    DIGITAL_DELIVERY,
    PICKUP_LOCATIONS,
    CartTotals,
    DeliveryMethod,
    PromoCode,
    calculate_totals,
    lookup_promo,
)
from ordering.cart.products import CartItem
from ordering.cart.store import CartStore
from ordering.checkout.result import CheckoutResult, get_checkout_result
from ordering.checkout.session import CheckoutSession
from ordering.checkout.settlement import WebhookSettlementHandler
from ordering.checkout.validation import CheckoutForm, validate_checkout
from ordering.order.confirmation import confirmation_for
from ordering.order.order import Order
from ordering.order.placement import PlaceFreeOrder
from ordering.settings.config import ShopConfig

logger = structlog.get_logger(__name__)

SUCCESS_PATH = "/checkout/success"
CANCEL_PATH = "/checkout/cancelled"


class CheckoutUnavailable(Exception):
    """Checkout is switched off (maintenance mode)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class FreeOrderPlaced:
    order_id: str


@dataclass(frozen=True)
class PaymentRedirect:
    url: str
    session_id: str
    checkout_ref: str


@dataclass(frozen=True)
class _PricedCheckout:
    """A validated form and cart, priced and converted to stored shapes (øre)."""

    form: CheckoutForm
    items: list[CartItem]
    delivery_method: str
    promo: PromoCode | None
    totals: CartTotals

    @property
    def customer(self) -> dict:
        return {
            "name": self.form.name.strip(),
            "email": self.form.email.strip(),
            "phone": (self.form.phone or "").strip() or None,
        }

    @property
    def pickup_location(self) -> str | None:
        return PICKUP_LOCATIONS.get(self.delivery_method)

    @property
    def shipping_address(self) -> dict | None:
        if self.delivery_method != DeliveryMethod.SHIPPING.value or self.form.address is None:
            return None
        return self.form.address.to_dict()

    def line_items(self) -> list[dict]:
        return [
            {
                "name": item.product.name,
                "quantity": item.quantity,
                "price": to_ore(item.product.price),
                "product_id": item.product.id,
            }
            for item in self.items
        ]

    def config_snapshot(self) -> dict:
        entries = []
        for item in self.items:
            config = item.product.config
            entries.append(
                {
                    "product_id": item.product.id,
                    "type": item.product.product_type.value,
                    "block_variant": config.block_variant if config else None,
                    "widths": dict(config.widths) if config else None,
                    "heights": dict(config.heights) if config else None,
                    "depth": config.depth if config else None,
                    "total_width": config.total_width if config else None,
                    "quantity": item.quantity,
                    "unit_price": item.product.price,
                }
            )
        return {
            "version": 1,
            "items": entries,
            "promo_code": self.promo.code if self.promo else None,
            "promo_discount": to_ore(self.totals.discount),
        }

    def amounts(self) -> dict:
        return {
            "subtotal": to_ore(self.totals.subtotal),
            "shipping": to_ore(self.totals.shipping),
            "total": to_ore(self.totals.discounted_total),
            "promo_discount": to_ore(self.totals.discount),
        }


class CheckoutOrchestrator:
    """Runs checkout against an explicit shop config and payment gateway."""

    def __init__(self, config: ShopConfig, gateway: PaymentGateway, site_url: str) -> None:
        self.config = config
        self.gateway = gateway
        self.site_url = site_url.rstrip("/")

    def price(self, form: CheckoutForm, cart: CartStore) -> _PricedCheckout:
        """Validate the form against the cart and compute totals with this config."""
        items = list(cart.items)
        validate_checkout(form, items)

        digital_only = cart.is_digital_only
        delivery_method = DIGITAL_DELIVERY if digital_only else form.delivery_method
        promo = lookup_promo(cart.promo_code, self.config.promo_codes)
        totals = calculate_totals(
            items,
            delivery_method,
            self.config.shipping_cost,
            promo=promo,
            digital_only=digital_only,
        )
        return _PricedCheckout(
            form=form,
            items=items,
            delivery_method=delivery_method,
            promo=promo,
            totals=totals,
        )

    def submit(self, form: CheckoutForm, cart: CartStore) -> FreeOrderPlaced | PaymentRedirect:
        """Check out the cart.

        Raises:
            CheckoutUnavailable: the shop is in maintenance mode.
            ValidationError: the form or cart breaks a checkout rule.
            ConfigurationError, GatewayError: the payment page could not be opened.
        """
        if self.config.maintenance.enabled:
            raise CheckoutUnavailable(self.config.maintenance.message)

        priced = self.price(form, cart)
        if priced.totals.is_free:
            return self._place_free_order(priced, cart)
        return self._open_payment_page(priced)

    def _place_free_order(self, priced: _PricedCheckout, cart: CartStore) -> FreeOrderPlaced:
        amounts = priced.amounts()
        command = PlaceFreeOrder(
            customer_name=priced.customer["name"],
            customer_email=priced.customer["email"],
            customer_phone=priced.customer["phone"],
            delivery_method=priced.delivery_method,
            pickup_location=priced.pickup_location,
            shipping_address=json.dumps(priced.shipping_address) if priced.shipping_address else None,
            line_items=json.dumps(priced.line_items()),
            config_snapshot=json.dumps(priced.config_snapshot()),
            subtotal_amount=amounts["subtotal"],
            shipping_amount=amounts["shipping"],
            promo_code=priced.promo.code if priced.promo else None,
            promo_discount_amount=amounts["promo_discount"],
            payment_method=priced.form.payment_method,
        )
        order_id = current_domain.process(command, asynchronous=False)

        # Best effort; the order stands whatever the outcome
        order = current_domain.repository_for(Order).get(order_id)
        send_order_confirmation(confirmation_for(order))

        cart.clear()
        return FreeOrderPlaced(order_id=order_id)

    def _open_payment_page(self, priced: _PricedCheckout) -> PaymentRedirect:
        repo = current_domain.repository_for(CheckoutSession)
        session = CheckoutSession.open(
            customer=priced.customer,
            delivery_method=priced.delivery_method,
            pickup_location=priced.pickup_location,
            shipping_address=priced.shipping_address,
            line_items=priced.line_items(),
            config_snapshot=priced.config_snapshot(),
            amounts=priced.amounts(),
            promo_code=priced.promo.code if priced.promo else None,
            payment_method=priced.form.payment_method,
        )
        repo.add(session)

        request = CheckoutRequest(
            checkout_ref=session.checkout_ref,
            customer_email=priced.customer["email"],
            customer_name=priced.customer["name"],
            customer_phone=priced.customer["phone"],
            line_items=[
                SessionLineItem(
                    name=item.product.name,
                    unit_price=item.product.price,
                    quantity=item.quantity,
                    product_id=item.product.id,
                )
                for item in priced.items
            ],
            delivery_method=priced.delivery_method,
            pickup_location=priced.pickup_location,
            shipping_address=priced.shipping_address,
            shipping_amount=priced.totals.shipping,
            promo_discount=priced.totals.discount,
            promo_code=priced.promo.code if priced.promo else None,
            payment_method=priced.form.payment_method,
            success_url=f"{self.site_url}{SUCCESS_PATH}",
            cancel_url=f"{self.site_url}{CANCEL_PATH}",
        )

        try:
            hosted = self.gateway.create_session(request)
        except Exception as exc:
            session.mark_failed(str(exc))
            repo.add(session)
            logger.warning("Checkout session failed", checkout_ref=session.checkout_ref, error=str(exc))
            raise

        session.attach_provider_session(hosted.session_id)
        repo.add(session)
        logger.info("Checkout session opened", checkout_ref=session.checkout_ref, session_id=hosted.session_id)
        return PaymentRedirect(url=hosted.url, session_id=hosted.session_id, checkout_ref=session.checkout_ref)

    def complete(self, session_id: str, cart: CartStore | None = None) -> CheckoutResult:
        """Success callback: settle a verified paid session and consume the cart.

        Raises:
            PaymentNotCompleted: the provider does not report the session as paid.
        """
        verified = self.gateway.verify_session(session_id)
        WebhookSettlementHandler(self.gateway).settle_paid(
            provider_session_id=session_id,
            checkout_ref=verified.checkout_ref,
            payment_intent_id=verified.payment_intent_id,
        )
        if cart is not None:
            cart.clear()
        return get_checkout_result(session_id)
