"""Florist store profile and delivery slot models.

The schedule is stored in plain columns (and a JSON column for business
hours) and exposed to the rules as validated value objects through the
``get_*`` accessors.  A malformed stored schedule raises
``ConfigurationError`` from those accessors instead of being defaulted.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel
from modules.florists import dtos
from modules.florists.constants import DistanceType, StoreStatus
from modules.florists.exceptions import ConfigurationError


class Florist(SoftDeleteModel):
    """Florist aggregate root.

    ``latitude`` / ``longitude`` are optional: a florist without a location
    can still take pickup orders but is skipped by distance-based search.
    ``timezone`` is the IANA zone the florist's wall-clock times refer to.
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="florists",
    )
    store_name = models.CharField(max_length=255)
    store_status = models.CharField(
        max_length=10,
        choices=StoreStatus.choices,
        default=StoreStatus.PENDING,
    )
    contact_email = models.EmailField(max_length=254, blank=True, default="")
    address = models.TextField(blank=True, default="")
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    timezone = models.CharField(max_length=64, default="UTC")

    business_hours = models.JSONField(default=dict, blank=True)

    is_delivery_enabled = models.BooleanField(default=False)
    delivery_radius_km = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("10.00")
    )
    delivery_fee = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    minimum_order = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    same_day_cutoff = models.CharField(max_length=5, blank=True, default="")
    next_day_cutoff_enabled = models.BooleanField(default=False)
    next_day_cutoff = models.CharField(max_length=5, blank=True, default="")
    blackout_dates = models.JSONField(default=list, blank=True)
    distance_type = models.CharField(
        max_length=10,
        choices=DistanceType.choices,
        default=DistanceType.RADIUS,
    )

    class Meta:
        db_table = "florists"
        ordering = ["store_name"]
        indexes = [
            models.Index(fields=["store_status"], name="florists_status_idx"),
        ]

    # ------------------------------------------------------------------
    # Value objects
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.store_status == StoreStatus.ACTIVE and not self.is_deleted

    @property
    def location(self) -> Optional[dtos.Coordinates]:
        if self.latitude is None or self.longitude is None:
            return None
        return dtos.Coordinates(lat=self.latitude, lng=self.longitude)

    def get_business_hours(self) -> dtos.BusinessHours:
        return dtos.BusinessHours.from_mapping(self.business_hours)

    def get_delivery_settings(self) -> dtos.DeliverySettings:
        return dtos.DeliverySettings.from_mapping(
            {
                "radius_km": self.delivery_radius_km,
                "fee_per_order": self.delivery_fee,
                "minimum_order": self.minimum_order,
                "same_day_cutoff": self.same_day_cutoff or None,
                "next_day_cutoff_enabled": self.next_day_cutoff_enabled,
                "next_day_cutoff": self.next_day_cutoff or None,
                "blackout_dates": self.blackout_dates or [],
                "distance_type": self.distance_type,
            }
        )

    def get_delivery_slots(self) -> List[dtos.DeliverySlot]:
        return [slot.to_value() for slot in self.delivery_slots.all()]

    def apply_delivery_settings(self, value: dtos.DeliverySettings) -> None:
        self.delivery_radius_km = value.radius_km
        self.delivery_fee = value.fee_per_order
        self.minimum_order = value.minimum_order
        self.same_day_cutoff = value.same_day_cutoff or ""
        self.next_day_cutoff_enabled = value.next_day_cutoff_enabled
        self.next_day_cutoff = value.next_day_cutoff or ""
        self.blackout_dates = [day.isoformat() for day in value.blackout_dates]
        self.distance_type = value.distance_type

    # ------------------------------------------------------------------
    # Local time
    # ------------------------------------------------------------------

    def local_time(self, moment: datetime) -> datetime:
        """*moment* expressed in the florist's timezone."""
        try:
            zone = ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown timezone '{self.timezone}'.") from exc
        return moment.astimezone(zone)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.store_name} ({self.store_status})"


class DeliverySlot(BaseModel):
    """Bookable delivery window for a florist.

    Slots are replaced wholesale when the schedule changes, so they are
    hard-deleted rather than soft-deleted.
    """

    florist = models.ForeignKey(
        "florists.Florist",
        on_delete=models.CASCADE,
        related_name="delivery_slots",
    )
    name = models.CharField(max_length=64)
    start_time = models.CharField(max_length=5)
    end_time = models.CharField(max_length=5)
    enabled = models.BooleanField(default=True)
    max_orders = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1)]
    )
    premium_fee = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        db_table = "florist_delivery_slots"
        ordering = ["start_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["florist", "name"], name="delivery_slot_unique_name"
            ),
        ]

    @classmethod
    def from_value(cls, florist_id, value: dtos.DeliverySlot) -> DeliverySlot:
        return cls(
            florist_id=florist_id,
            name=value.name,
            start_time=value.start,
            end_time=value.end,
            enabled=value.enabled,
            max_orders=value.max_orders,
            premium_fee=value.premium_fee,
        )

    def to_value(self) -> dtos.DeliverySlot:
        return dtos.build_config(
            dtos.DeliverySlot,
            {
                "name": self.name,
                "start": self.start_time,
                "end": self.end_time,
                "enabled": self.enabled,
                "max_orders": self.max_orders,
                "premium_fee": self.premium_fee,
            },
        )

    @property
    def label(self) -> str:
        return f"{self.start_time}-{self.end_time}"

    def __str__(self) -> str:
        return f"{self.name} ({self.label})"
