"""Order status and print-queue position.

Orders in an in-flight production status wait in a FIFO queue ordered by
production number. Only orders in the exact same status are counted; the
creation timestamp is not used for ordering.
"""

from dataclasses import dataclass

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.order.order import QUEUED_STATUSES, Order


@dataclass(frozen=True)
class QueuePosition:
    basis: str
    position: int
    ahead: int
    total: int

    def to_dict(self) -> dict:
        return {"basis": self.basis, "position": self.position, "ahead": self.ahead, "total": self.total}


@dataclass(frozen=True)
class OrderStatusReport:
    order: Order
    queue: QueuePosition | None


def queue_position_for(order: Order) -> QueuePosition | None:
    """Position of an order among orders sharing its status.

    Returns ``None`` outside the queued statuses or when the order has no
    production number (shown to the customer as position unknown).
    """
    if order.status not in QUEUED_STATUSES or order.production_number is None:
        return None

    repo = current_domain.repository_for(Order)
    ahead = repo.count_in_status(order.status, below_production_number=order.production_number)
    total = repo.count_in_status(order.status)
    return QueuePosition(basis=order.status, position=ahead + 1, ahead=ahead, total=total)


def get_order_status(order_id: str | None) -> OrderStatusReport:
    """Look up an order by id together with its queue position.

    Raises:
        ValidationError: no order id given.
        ObjectNotFoundError: no order with that id.
    """
    if not order_id or not str(order_id).strip():
        raise ValidationError({"order_id": ["Order id is required"]})

    order = current_domain.repository_for(Order).get(str(order_id).strip())
    return OrderStatusReport(order=order, queue=queue_position_for(order))
