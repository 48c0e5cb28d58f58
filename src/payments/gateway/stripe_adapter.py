"""Stripe hosted-checkout adapter.

Uses stripe-python with a per-request API key, so no global SDK state is
shared between gateway instances. Amounts are converted from kroner to øre
here and only here.
"""

import json
import os
from dataclasses import replace

import stripe
import structlog
from protean.exceptions import ConfigurationError

from payments.gateway.port import (
    CheckoutRequest,
    GatewayError,
    HostedSession,
    InvalidSignature,
    PaymentGateway,
    PaymentMethodUnavailable,
    VerifiedSession,
    WebhookEvent,
    decode_metadata,
)
from shared.money import to_kroner, to_ore

logger = structlog.get_logger(__name__)

CURRENCY = "nok"
LOCALE = "nb"
SHIPPING_LINE_NAME = "Frakt"
DEFAULT_COUPON_NAME = "Rabatt"

# Stripe rejects metadata values longer than this
METADATA_VALUE_LIMIT = 500


def _line_item(name: str, unit_price: int, quantity: int) -> dict:
    return {
        "price_data": {
            "currency": CURRENCY,
            "product_data": {"name": name},
            "unit_amount": to_ore(unit_price),
        },
        "quantity": quantity,
    }


def _success_url(url: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}session_id={{CHECKOUT_SESSION_ID}}"


class StripeGateway(PaymentGateway):
    """Production gateway backed by Stripe Checkout."""

    def __init__(self, api_key: str | None, webhook_secret: str | None) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    @classmethod
    def from_env(cls) -> "StripeGateway":
        return cls(
            api_key=os.environ.get("STRIPE_SECRET_KEY"),
            webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET"),
        )

    def _require_api_key(self) -> str:
        if not self.api_key:
            logger.error("Stripe secret key is not configured")
            raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
        return self.api_key

    def _metadata(self, request: CheckoutRequest) -> dict[str, str]:
        metadata = request.metadata()
        if len(metadata["items_json"]) > METADATA_VALUE_LIMIT:
            # Line items are read back from the session itself instead
            logger.info("Line items too large for session metadata", checkout_ref=request.checkout_ref)
            metadata["items_json"] = ""
        return metadata

    def _create_session(self, request: CheckoutRequest) -> HostedSession:
        api_key = self._require_api_key()

        line_items = [_line_item(item.name, item.unit_price, item.quantity) for item in request.line_items]
        if request.shipping_amount > 0:
            line_items.append(_line_item(SHIPPING_LINE_NAME, request.shipping_amount, 1))

        params = {
            "mode": "payment",
            "line_items": line_items,
            "customer_email": request.customer_email,
            "client_reference_id": request.checkout_ref,
            "metadata": self._metadata(request),
            "payment_method_types": [request.payment_method],
            "locale": LOCALE,
            "success_url": _success_url(request.success_url),
            "cancel_url": request.cancel_url,
        }

        try:
            if request.promo_discount > 0:
                coupon = stripe.Coupon.create(
                    api_key=api_key,
                    amount_off=to_ore(request.promo_discount),
                    currency=CURRENCY,
                    duration="once",
                    name=request.promo_code or DEFAULT_COUPON_NAME,
                )
                params["discounts"] = [{"coupon": coupon.id}]

            session = stripe.checkout.Session.create(api_key=api_key, **params)
        except stripe.InvalidRequestError as exc:
            logger.warning("Stripe rejected checkout session", checkout_ref=request.checkout_ref, error=str(exc))
            message = str(exc).lower()
            if "payment_method" in message or "vipps" in message:
                raise PaymentMethodUnavailable(str(exc)) from exc
            raise GatewayError(str(exc)) from exc
        except stripe.StripeError as exc:
            logger.error("Stripe checkout session failed", checkout_ref=request.checkout_ref, error=str(exc))
            raise GatewayError(str(exc)) from exc

        logger.info("Stripe checkout session created", checkout_ref=request.checkout_ref, session_id=session.id)
        return HostedSession(session_id=session.id, url=session.url)

    def _line_items_from_session(self, data: dict) -> list[dict]:
        line_items = (data.get("line_items") or {}).get("data") or []
        return [
            {
                "name": item.get("description"),
                "quantity": item.get("quantity") or 1,
                "price": to_kroner(item.get("amount_total")) / (item.get("quantity") or 1),
            }
            for item in line_items
            if item.get("description") != SHIPPING_LINE_NAME
        ]

    def retrieve_session(self, session_id: str) -> VerifiedSession:
        api_key = self._require_api_key()
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=api_key, expand=["line_items"])
        except stripe.StripeError as exc:
            logger.error("Stripe session lookup failed", session_id=session_id, error=str(exc))
            raise GatewayError(str(exc)) from exc

        data = session.to_dict()
        metadata = data.get("metadata") or {}
        customer = data.get("customer_details") or {}
        verified = decode_metadata(
            metadata,
            session_id=session_id,
            payment_status=data.get("payment_status") or "unpaid",
            customer_email=customer.get("email") or data.get("customer_email"),
            customer_name=customer.get("name"),
            customer_phone=customer.get("phone"),
            total_amount=to_kroner(data.get("amount_total")),
            payment_intent_id=data.get("payment_intent"),
        )
        if not verified.items:
            verified = replace(verified, items=self._line_items_from_session(data))
        return verified

    def construct_webhook_event(self, payload: bytes, signature: str) -> WebhookEvent:
        if not self.webhook_secret:
            logger.error("Stripe webhook secret is not configured")
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is not configured")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Stripe webhook signature verification failed")
            raise InvalidSignature(str(exc)) from exc
        except ValueError as exc:
            raise InvalidSignature("Webhook payload is not valid JSON") from exc

        return WebhookEvent.from_payload(json.loads(payload))
