"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when a customer places an order."""

    florist_id: str = ""
    delivery_type: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order status changes (cancellation included)."""

    old_status: str = ""
    new_status: str = ""
    notes: str = ""
