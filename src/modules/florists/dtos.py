"""Florist value objects and DTOs.

Framework-agnostic, immutable (``frozen=True``) Pydantic v2 models.  They
are the validated shape of a florist's schedule configuration and the
inputs to the availability, distance and search rules:

- ``DayHours`` / ``BusinessHours``: opening hours per weekday.
- ``DeliverySettings``: radius, fees, cutoffs, blackout dates and distance mode.
- ``DeliverySlot``: a bookable delivery window.
- ``Coordinates``: a WGS84 point.
- ``UpdateScheduleDTO``: input for replacing any part of the schedule.
- ``FloristSearchDTO``: input for florist search.

Use :func:`build_config` (or the ``from_mapping`` helpers) to turn raw
JSON into value objects: validation failures surface as
``ConfigurationError``, never as silently defaulted values.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Tuple, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from modules.florists.constants import (
    DEFAULT_MAX_SEARCH_DISTANCE_KM,
    MAX_DELIVERY_RADIUS_KM,
    DistanceType,
)
from modules.florists.exceptions import ConfigurationError
from modules.orders.constants import DeliveryType
from shared.domain.timeutils import normalize_hhmm, weekday_name

M = TypeVar("M", bound=BaseModel)


def build_config(model_cls: Type[M], data: Any) -> M:
    """Validate *data* into *model_cls*, raising ``ConfigurationError``."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid {model_cls.__name__}: {_summarize(exc)}"
        ) from exc


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error["loc"]) or "value"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def _normalize_optional_time(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return normalize_hhmm(value)


# ---------------------------------------------------------------------------
# Schedule value objects
# ---------------------------------------------------------------------------


class DayHours(BaseModel):
    """Opening hours for a single weekday (same-day spans only)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    open: Optional[str] = None
    close: Optional[str] = None
    closed: bool = False

    @field_validator("open", "close", mode="before")
    @classmethod
    def normalize_time(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_optional_time(v)

    @model_validator(mode="after")
    def close_after_open(self) -> DayHours:
        if self.closed:
            return self
        if self.open is None or self.close is None:
            raise ValueError("Open days need both 'open' and 'close' times.")
        if self.close <= self.open:
            raise ValueError(
                f"Closing time {self.close} must be after opening time {self.open}."
            )
        return self


class BusinessHours(BaseModel):
    """Opening hours keyed by weekday.

    A missing weekday means the florist does not trade that day.  Unknown
    keys (``"mon"``, ``"Monday "``) are rejected rather than ignored.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    monday: Optional[DayHours] = None
    tuesday: Optional[DayHours] = None
    wednesday: Optional[DayHours] = None
    thursday: Optional[DayHours] = None
    friday: Optional[DayHours] = None
    saturday: Optional[DayHours] = None
    sunday: Optional[DayHours] = None

    @classmethod
    def from_mapping(cls, data: Any) -> BusinessHours:
        return build_config(cls, data or {})

    def for_day(self, day: date) -> Optional[DayHours]:
        return getattr(self, weekday_name(day))

    def to_mapping(self) -> dict:
        return self.model_dump(exclude_none=True)


class DeliverySettings(BaseModel):
    """A florist's delivery configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    radius_km: Decimal = Field(gt=0, le=MAX_DELIVERY_RADIUS_KM)
    fee_per_order: Decimal = Field(default=Decimal("0.00"), ge=0)
    minimum_order: Decimal = Field(default=Decimal("0.00"), ge=0)
    same_day_cutoff: Optional[str] = None
    next_day_cutoff_enabled: bool = False
    next_day_cutoff: Optional[str] = None
    distance_type: DistanceType = DistanceType.RADIUS
    blackout_dates: Tuple[date, ...] = ()

    @field_validator("same_day_cutoff", "next_day_cutoff", mode="before")
    @classmethod
    def normalize_cutoff(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_optional_time(v)

    @field_validator("blackout_dates")
    @classmethod
    def sort_blackout_dates(cls, v: Tuple[date, ...]) -> Tuple[date, ...]:
        return tuple(sorted(set(v)))

    @model_validator(mode="after")
    def next_day_cutoff_required_when_enabled(self) -> DeliverySettings:
        if self.next_day_cutoff_enabled and self.next_day_cutoff is None:
            raise ValueError("next_day_cutoff is required when next-day cutoff is enabled.")
        return self

    def is_blackout(self, day: date) -> bool:
        return day in self.blackout_dates

    @classmethod
    def from_mapping(cls, data: Any) -> DeliverySettings:
        return build_config(cls, data)


class DeliverySlot(BaseModel):
    """A named delivery window with a per-day order cap.

    ``premium_fee`` is charged on top of the florist's delivery fee for
    orders booked into this slot (evening or holiday windows).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=64)
    start: str
    end: str
    enabled: bool = True
    max_orders: int = Field(default=1, ge=1)
    premium_fee: Decimal = Field(default=Decimal("0.00"), ge=0)

    @field_validator("start", "end", mode="before")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        return normalize_hhmm(v)

    @model_validator(mode="after")
    def end_after_start(self) -> DeliverySlot:
        if self.end <= self.start:
            raise ValueError(f"Slot end {self.end} must be after start {self.start}.")
        return self

    @property
    def label(self) -> str:
        return f"{self.start}-{self.end}"


class Coordinates(BaseModel):
    """A WGS84 latitude/longitude pair."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class UpdateScheduleDTO(BaseModel):
    """Replace any of business hours, delivery settings and slots.

    Fields left as ``None`` are not touched.  ``delivery_slots=[]``
    removes every slot.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    business_hours: Optional[BusinessHours] = None
    delivery_settings: Optional[DeliverySettings] = None
    delivery_slots: Optional[List[DeliverySlot]] = None

    @field_validator("delivery_slots")
    @classmethod
    def slot_names_unique(
        cls, v: Optional[List[DeliverySlot]]
    ) -> Optional[List[DeliverySlot]]:
        if v is not None:
            names = [slot.name for slot in v]
            if len(names) != len(set(names)):
                raise ValueError("Delivery slot names must be unique.")
        return v

    @classmethod
    def from_payload(cls, data: Any) -> UpdateScheduleDTO:
        return build_config(cls, data)


class FloristSearchDTO(BaseModel):
    """Immutable DTO for florist search requests.

    Validates:
    - latitude and longitude are given together (or not at all).
    - ``requested_time`` is a 24-hour ``HH:MM`` time.
    """

    model_config = ConfigDict(frozen=True)

    query: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    fulfillment: Optional[DeliveryType] = None
    requested_date: Optional[date] = None
    requested_time: Optional[str] = None
    max_distance_km: float = Field(default=DEFAULT_MAX_SEARCH_DISTANCE_KM, gt=0)

    @field_validator("requested_time", mode="before")
    @classmethod
    def normalize_time(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_optional_time(v)

    @model_validator(mode="after")
    def coordinates_together(self) -> FloristSearchDTO:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together.")
        return self

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(lat=self.latitude, lng=self.longitude)
