"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``PlaceOrderDTO``: input for order placement.
- ``StatusHistoryDTO``: output for a status history record.
- ``OrderOutputDTO``: output with status history.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.florists.dtos import Coordinates
from modules.florists.slots import parse_slot_label
from modules.orders.constants import DeliveryType
from shared.domain.timeutils import normalize_hhmm

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class PlaceOrderDTO(BaseModel):
    """Immutable DTO for order placement requests.

    Validates:
    - ``delivery_time`` is a 24-hour ``HH:MM`` time.
    - ``delivery_time_slot`` is an ``HH:MM-HH:MM`` label (normalised).
    - Delivery orders carry an address; coordinates come in pairs.
    """

    model_config = ConfigDict(frozen=True)

    florist_id: UUID
    customer_id: Optional[int] = None
    delivery_type: DeliveryType
    delivery_date: date
    delivery_time: Optional[str] = None
    delivery_time_slot: Optional[str] = None
    delivery_address: str = ""
    delivery_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    delivery_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    contact_email: str = ""
    subtotal: Decimal = Field(ge=0)
    notes: str = ""

    @field_validator("delivery_time", mode="before")
    @classmethod
    def normalize_time(cls, v: Optional[str]) -> Optional[str]:
        if v in (None, ""):
            return None
        return normalize_hhmm(v)

    @field_validator("delivery_time_slot", mode="before")
    @classmethod
    def normalize_slot(cls, v: Optional[str]) -> Optional[str]:
        if v in (None, ""):
            return None
        start, end = parse_slot_label(v)
        return f"{start}-{end}"

    @model_validator(mode="after")
    def delivery_details(self) -> PlaceOrderDTO:
        if (self.delivery_latitude is None) != (self.delivery_longitude is None):
            raise ValueError(
                "delivery_latitude and delivery_longitude must be provided together."
            )
        if self.delivery_type == DeliveryType.DELIVERY and not self.delivery_address.strip():
            raise ValueError("Delivery orders require a delivery address.")
        return self

    @property
    def delivery_location(self) -> Optional[Coordinates]:
        if self.delivery_latitude is None or self.delivery_longitude is None:
            return None
        return Coordinates(lat=self.delivery_latitude, lng=self.delivery_longitude)

    @property
    def requested_time(self) -> Optional[str]:
        """Time checked against opening hours: explicit time, else slot start."""
        if self.delivery_time is not None:
            return self.delivery_time
        if self.delivery_time_slot is not None:
            return self.delivery_time_slot.split("-")[0]
        return None


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class StatusHistoryDTO(BaseModel):
    """Immutable DTO for order status history records."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    old_status: Optional[str]
    new_status: str
    notes: str
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            id=history.id,
            old_status=history.old_status,
            new_status=history.new_status,
            notes=history.notes,
            created_at=history.created_at,
        )


class OrderOutputDTO(BaseModel):
    """Immutable snapshot of an order, used for notifications."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    order_number: str
    florist_id: UUID
    florist_name: str
    florist_email: str
    delivery_type: str
    status: str
    delivery_date: date
    delivery_time_slot: str
    delivery_address: str
    contact_email: str
    subtotal: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    notes: str
    created_at: datetime
    history: List[StatusHistoryDTO]

    @classmethod
    def from_entity(cls, order: Order) -> OrderOutputDTO:
        """Build an output DTO from an Order model instance.

        Assumes ``florist`` and ``status_history`` are eager-loaded.
        """
        history = [StatusHistoryDTO.from_entity(h) for h in order.status_history.all()]
        return cls(
            id=order.id,
            order_number=order.order_number,
            florist_id=order.florist_id,
            florist_name=order.florist.store_name,
            florist_email=order.florist.contact_email,
            delivery_type=order.delivery_type,
            status=order.status,
            delivery_date=order.delivery_date,
            delivery_time_slot=order.delivery_time_slot,
            delivery_address=order.delivery_address,
            contact_email=order.contact_email,
            subtotal=order.subtotal,
            delivery_fee=order.delivery_fee,
            total_amount=order.total_amount,
            notes=order.notes,
            created_at=order.created_at,
            history=history,
        )
