"""Order repository — lookups, production numbering and idempotent insert."""

import structlog
from protean.exceptions import ValidationError

from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_provider_session(self, provider_session_id: str) -> Order | None:
        results = self._dao.query.filter(provider_session_id=provider_session_id).all().items
        return results[0] if results else None

    def next_production_number(self) -> int:
        latest = self._dao.query.order_by("-production_number").limit(1).all().items
        if not latest or latest[0].production_number is None:
            return 1
        return latest[0].production_number + 1

    def count_in_status(self, status: str, below_production_number: int | None = None) -> int:
        """Count orders in a status, optionally only those with a smaller production number."""
        criteria = {"status": status}
        if below_production_number is not None:
            criteria["production_number__lt"] = below_production_number
        return self._dao.query.filter(**criteria).all().total

    def list_recent(self, status: str | None = None, limit: int = 100) -> list[Order]:
        """Newest orders first, optionally restricted to one status."""
        query = self._dao.query
        if status:
            query = query.filter(status=status)
        return query.order_by("-created_at").limit(limit).all().items

    def add_once(self, order: Order) -> tuple[Order, bool]:
        """Insert an order unless one already exists for its provider session.

        Returns ``(order, created)``. When a concurrent delivery wins the race
        the unique provider_session_id check rejects the insert; that conflict
        means "already created", so the stored order is fetched and returned.
        """
        existing = self.find_by_provider_session(order.provider_session_id)
        if existing is not None:
            logger.info(
                "Order already exists for provider session",
                provider_session_id=order.provider_session_id,
                order_id=str(existing.id),
            )
            return existing, False

        try:
            self.add(order)
        except ValidationError as exc:
            if "provider_session_id" not in exc.messages:
                raise
            existing = self.find_by_provider_session(order.provider_session_id)
            if existing is None:
                raise
            logger.info(
                "Duplicate settlement resolved to existing order",
                provider_session_id=order.provider_session_id,
                order_id=str(existing.id),
            )
            return existing, False

        return order, True
