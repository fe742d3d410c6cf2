"""Django ORM implementation of the Order repository.

Concurrency control on status updates combines ``select_for_update()``
(row lock while validating) with a compare-and-set ``UPDATE ... WHERE
status = <expected>`` so a stale read can never overwrite a newer status,
even on backends that ignore row locks.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(**data)
        order.save()
        logger.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            florist_id=str(order.florist_id),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve a non-deleted order with eager-loaded relations.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.alive()
                .select_related("florist")
                .prefetch_related("status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Only the order row is locked.  Returns ``None`` for non-existent
        or invalid IDs.
        """
        try:
            return Order.objects.select_for_update().alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List non-deleted orders.

        Supported filter keys are any Django look-ups, e.g.
        ``status``, ``florist_id``, ``delivery_date__range``.
        """
        queryset = Order.objects.alive().select_related("florist")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    # ------------------------------------------------------------------
    # Save / Delete
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        entity.save()
        logger.info("order.saved", order_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete an order by ID."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.soft_deleted", order_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def compare_and_set_status(self, order_id: UUID, expected: str, new: str) -> bool:
        updated = Order.objects.filter(id=order_id, status=expected).update(
            status=new, updated_at=timezone.now()
        )
        return updated == 1

    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
        )
        history.save()
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def count_in_slot(
        self, florist_id: UUID, delivery_date: date, slot_label: str
    ) -> int:
        return (
            Order.objects.alive()
            .filter(
                florist_id=florist_id,
                delivery_date=delivery_date,
                delivery_time_slot=slot_label,
            )
            .exclude(status=OrderStatus.CANCELLED)
            .count()
        )
