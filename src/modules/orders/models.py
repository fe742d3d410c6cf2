"""Order and OrderStatusHistory models.

- ``order_number`` is auto-generated as a human-readable identifier.
- The florist FK uses PROTECT to preserve order history.
- Status rules live in ``state_machine.py``; the model only delegates.
- ``OrderStatusHistory`` is append-only: rows can be inserted, never
  updated or deleted through the ORM.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any, Optional

import structlog
from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel
from modules.florists.dtos import Coordinates
from modules.orders import state_machine
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    DeliveryType,
    OrderStatus,
)
from modules.orders.exceptions import ImmutableHistoryError
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, SoftDeleteModel):
    """Order aggregate root.

    ``order_number`` is generated on first save (format:
    ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for all internal
    references and API lookups.

    ``delivery_time_slot`` holds the slot label (``"HH:MM-HH:MM"``) or is
    empty when no slot was chosen.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    florist: models.ForeignKey = models.ForeignKey(
        "florists.Florist",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    customer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    delivery_type: models.CharField = models.CharField(
        max_length=10,
        choices=DeliveryType.choices,
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    delivery_date: models.DateField = models.DateField()
    delivery_time_slot: models.CharField = models.CharField(
        max_length=11, blank=True, default=""
    )
    delivery_address: models.TextField = models.TextField(blank=True, default="")
    delivery_latitude: models.FloatField = models.FloatField(null=True, blank=True)
    delivery_longitude: models.FloatField = models.FloatField(null=True, blank=True)
    contact_email: models.EmailField = models.EmailField(
        max_length=254, blank=True, default=""
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    delivery_fee: models.DecimalField = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(
                fields=["florist", "delivery_date", "delivery_time_slot"],
                name="orders_slot_idx",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return state_machine.is_terminal(self.status)

    def next_statuses(self) -> frozenset[str]:
        return state_machine.next_statuses(self.status, self.delivery_type)

    def can_transition_to(self, new_status: str) -> bool:
        return state_machine.validate_transition(
            self.status, new_status, self.delivery_type
        ).valid

    @property
    def delivery_location(self) -> Optional[Coordinates]:
        if self.delivery_latitude is None or self.delivery_longitude is None:
            return None
        return Coordinates(lat=self.delivery_latitude, lng=self.delivery_longitude)

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class StatusHistoryQuerySet(models.QuerySet):
    """Rejects bulk mutation of history rows."""

    def update(self, **kwargs: Any) -> int:
        raise ImmutableHistoryError("Order status history cannot be updated.")

    def delete(self) -> tuple[int, dict[str, int]]:
        raise ImmutableHistoryError("Order status history cannot be deleted.")


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    ``old_status`` is ``None`` for the record written when the order is
    placed.  ``user`` is nullable: ``None`` means the change was performed
    by the system.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    objects = StatusHistoryQuerySet.as_manager()

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ImmutableHistoryError("Order status history cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ImmutableHistoryError("Order status history cannot be deleted.")

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
