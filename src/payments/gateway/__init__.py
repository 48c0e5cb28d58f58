"""Payment gateway selection.

``PAYMENT_GATEWAY=stripe`` selects Stripe hosted checkout; anything else
(including unset) selects the in-memory FakeGateway. Tests and the fake
gateway endpoints install an instance directly with set_gateway().
"""

import os

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway

_active: PaymentGateway | None = None


def gateway_from_env() -> PaymentGateway:
    if os.environ.get("PAYMENT_GATEWAY", "fake").strip().lower() == "stripe":
        from payments.gateway.stripe_adapter import StripeGateway

        return StripeGateway.from_env()
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """The gateway in use, chosen from the environment on first call."""
    global _active
    if _active is None:
        _active = gateway_from_env()
    return _active


def set_gateway(gateway: PaymentGateway) -> None:
    global _active
    _active = gateway


def reset_gateway() -> None:
    """Forget the active gateway; the next get_gateway() re-reads the environment."""
    global _active
    _active = None
