"""Ordering bounded context — storefront checkout and order tracking.

Hosts every persisted aggregate of the shop: site settings, checkout
sessions awaiting payment, the durable Order and its audit log. The cart
and pricing rules live alongside as plain Python, so they can run without
a domain context.
"""

import structlog
from protean.domain import Domain

from ordering.utils.logging import configure_logging

configure_logging()

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
