"""Tests for order status lookup and print-queue position."""

import pytest
from ordering.order.status import get_order_status, queue_position_for
from protean.exceptions import ObjectNotFoundError, ValidationError


class TestGetOrderStatus:
    def test_returns_order(self, order_factory):
        order = order_factory(production_number=7)
        report = get_order_status(str(order.id))
        assert str(report.order.id) == str(order.id)
        assert report.order.display_production_number == "0007"

    def test_id_is_trimmed(self, order_factory):
        order = order_factory()
        assert str(get_order_status(f"  {order.id} ").order.id) == str(order.id)

    @pytest.mark.parametrize("order_id", [None, "", "   "])
    def test_missing_id_rejected(self, order_id):
        with pytest.raises(ValidationError):
            get_order_status(order_id)

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            get_order_status("no-such-order")

    def test_new_order_has_no_queue(self, order_factory):
        assert get_order_status(str(order_factory().id)).queue is None


class TestQueuePosition:
    def test_first_in_status(self, order_factory):
        order = order_factory(production_number=1, status="in_production")
        queue = queue_position_for(order)
        assert queue.basis == "in_production"
        assert queue.position == 1
        assert queue.ahead == 0
        assert queue.total == 1

    def test_counts_smaller_production_numbers_in_same_status(self, order_factory):
        order_factory(production_number=1, status="printing")
        order_factory(production_number=2, status="printing")
        order_factory(production_number=3, status="in_production")
        order = order_factory(production_number=4, status="printing")

        queue = queue_position_for(order)

        assert queue.ahead == 2
        assert queue.position == 3
        assert queue.total == 3

    def test_other_statuses_not_counted(self, order_factory):
        order_factory(production_number=1, status="ready_to_print")
        order_factory(production_number=2, status="done")
        order = order_factory(production_number=3, status="in_production")

        assert queue_position_for(order).position == 1

    def test_smaller_number_never_behind(self, order_factory):
        orders = [order_factory(production_number=number, status="ready_to_print") for number in (5, 2, 9, 4)]
        positions = {order.production_number: queue_position_for(order).position for order in orders}

        ordered = [positions[number] for number in sorted(positions)]
        assert ordered == sorted(ordered)
        assert ordered == [1, 2, 3, 4]

    @pytest.mark.parametrize("status", ["new", "manual_review", "shipped", "done", "error", "arkivert", "reklamasjon"])
    def test_no_queue_outside_production(self, order_factory, status):
        assert queue_position_for(order_factory(status=status)) is None

    def test_no_queue_without_production_number(self, order_factory):
        assert queue_position_for(order_factory(production_number=None, provider_session_id="cs_x")) is None

    def test_report_includes_queue(self, order_factory):
        order_factory(production_number=1, status="printing")
        order = order_factory(production_number=2, status="printing")

        report = get_order_status(str(order.id))

        assert report.queue.to_dict() == {"basis": "printing", "position": 2, "ahead": 1, "total": 2}
