"""Administrative order management — commands and handler.

Status changes are free-form within the status enum; bulk operations act on
an explicit list of ids and fail as a whole if any id is unknown.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.audit import STATUS_CHANGED, log_order_event
from ordering.order.order import Order, parse_status

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@ordering.command(part_of="Order")
class UpdateOrderNotes:
    order_id = Identifier(required=True)
    notes = Text()


@ordering.command(part_of="Order")
class BulkUpdateOrderStatus:
    order_ids = Text(required=True)  # JSON: list of order ids
    status = String(required=True, max_length=20)


@ordering.command(part_of="Order")
class BulkDeleteOrders:
    order_ids = Text(required=True)  # JSON: list of order ids


def _decode_ids(raw):
    order_ids = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(order_ids, list) or not order_ids:
        raise ValidationError({"order_ids": ["At least one order id is required"]})
    # Preserve order, drop repeats
    return list(dict.fromkeys(str(order_id) for order_id in order_ids))


@ordering.command_handler(part_of=Order)
class ManageOrderHandler:
    def _apply_status(self, repo, order_id, status):
        order = repo.get(order_id)
        previous = order.status
        if order.change_status(status):
            repo.add(order)
            log_order_event(
                STATUS_CHANGED,
                order_id=str(order.id),
                payload={"from": previous, "to": order.status},
            )
        return order

    @handle(UpdateOrderStatus)
    def update_status(self, command):
        parse_status(command.status)
        repo = current_domain.repository_for(Order)
        order = self._apply_status(repo, command.order_id, command.status)
        return order.status

    @handle(UpdateOrderNotes)
    def update_notes(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_notes(command.notes)
        repo.add(order)

    @handle(BulkUpdateOrderStatus)
    def bulk_update_status(self, command):
        parse_status(command.status)
        order_ids = _decode_ids(command.order_ids)
        repo = current_domain.repository_for(Order)
        for order_id in order_ids:
            self._apply_status(repo, order_id, command.status)

        logger.info("Bulk status update", count=len(order_ids), status=command.status)
        return len(order_ids)

    @handle(BulkDeleteOrders)
    def bulk_delete(self, command):
        order_ids = _decode_ids(command.order_ids)
        repo = current_domain.repository_for(Order)
        orders = [repo.get(order_id) for order_id in order_ids]
        for order in orders:
            repo._dao.delete(order)

        logger.info("Bulk delete", count=len(orders))
        return len(orders)
