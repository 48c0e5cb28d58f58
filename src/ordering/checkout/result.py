"""Checkout result lookup for the payment success page."""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.checkout.session import CheckoutSession, CheckoutStatus
from ordering.order.order import Order


@dataclass(frozen=True)
class CheckoutResult:
    status: str
    checkout: CheckoutSession
    order: Order | None = None

    @property
    def message(self) -> str | None:
        if self.status == CheckoutStatus.PENDING.value:
            return "Payment is being confirmed."
        if self.status in (CheckoutStatus.EXPIRED.value, CheckoutStatus.FAILED.value):
            return self.checkout.error_message or "Payment was not completed."
        return None


def get_checkout_result(provider_session_id: str) -> CheckoutResult:
    """Report where a checkout stands: pending, paid (with order), expired or failed."""
    if not provider_session_id:
        raise ValidationError({"session_id": ["Session id is required"]})

    checkout = current_domain.repository_for(CheckoutSession).find_by_provider_session(provider_session_id)
    if checkout is None:
        raise ObjectNotFoundError(f"No checkout session for {provider_session_id}")

    order = None
    if checkout.is_paid and checkout.order_id:
        order = current_domain.repository_for(Order).get(checkout.order_id)
    return CheckoutResult(status=checkout.status, checkout=checkout, order=order)
