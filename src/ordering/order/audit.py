"""Order audit log — append-only record of settlement and admin events."""

import json
from datetime import UTC, datetime

from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering

FREE_ORDER_PLACED = "order.free_placed"
STATUS_CHANGED = "order.status_changed"
SESSION_COMPLETED = "stripe.checkout.session.completed"
SESSION_EXPIRED = "stripe.checkout.session.expired"


@ordering.aggregate
class OrderEvent:
    order_id = Identifier()
    checkout_session_id = Identifier()
    event_type = String(required=True, max_length=100)
    provider_event_id = String(max_length=255)
    provider_session_id = String(max_length=255)
    payload = Text()  # JSON
    created_at = DateTime(required=True)

    @property
    def payload_data(self) -> dict:
        return json.loads(self.payload) if self.payload else {}


def log_order_event(
    event_type,
    order_id=None,
    checkout_session_id=None,
    provider_event_id=None,
    provider_session_id=None,
    payload=None,
):
    entry = OrderEvent(
        order_id=order_id,
        checkout_session_id=checkout_session_id,
        event_type=event_type,
        provider_event_id=provider_event_id,
        provider_session_id=provider_session_id,
        payload=json.dumps(payload or {}),
        created_at=datetime.now(UTC),
    )
    current_domain.repository_for(OrderEvent).add(entry)
    return entry


def events_for_order(order_id) -> list[OrderEvent]:
    repo = current_domain.repository_for(OrderEvent)
    return repo._dao.query.filter(order_id=order_id).order_by("created_at").all().items
