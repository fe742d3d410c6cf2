"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the order service needs:
row-locked reads, compare-and-set status writes, status history and
slot capacity counts.

The Service Layer depends exclusively on this contract.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes the append-only ``OrderStatusHistory`` records.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order from a dict of model field values."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its florist and status history."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock (``SELECT FOR UPDATE``)."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def compare_and_set_status(
        self, order_id: UUID, expected: str, new: str
    ) -> bool:
        """Write *new* only if the stored status is still *expected*."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Append a record to the order's status history."""

    @abstractmethod
    def count_in_slot(
        self, florist_id: UUID, delivery_date: date, slot_label: str
    ) -> int:
        """Number of non-cancelled orders booked into a slot on a date."""
