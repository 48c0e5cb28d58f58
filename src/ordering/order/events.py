"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A paid (or fully discounted) order was persisted and entered the production pipeline."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    production_number = Integer()
    provider_session_id = String(required=True)
    customer_email = String(required=True)
    delivery_method = String(required=True)
    total_amount = Integer(required=True)  # øre
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    __version__ = "v1"

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderNotesUpdated:
    __version__ = "v1"

    order_id = Identifier(required=True)
    updated_at = DateTime(required=True)
