"""Availability evaluator.

Decides whether a florist can fulfil an order for a requested date and
(optional) time of day.  Pure and timezone-naive: ``now`` is supplied by
the caller, already expressed in the florist's local wall-clock time.

A denial is returned as ``AvailabilityResult(available=False, reason=...)``
data; nothing in here raises for an unavailable florist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from modules.florists.dtos import BusinessHours, DeliverySettings
from shared.domain.timeutils import (
    clock_hhmm,
    is_time_within_range,
    normalize_hhmm,
    weekday_name,
)


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    reason: Optional[str] = None


AVAILABLE = AvailabilityResult(available=True)


def evaluate(
    business_hours: BusinessHours,
    delivery_settings: DeliverySettings,
    now: datetime,
    requested_date: date,
    requested_time: Optional[str] = None,
) -> AvailabilityResult:
    """Evaluate a fulfillment request against hours and delivery settings.

    Checks, in order: the weekday is open, the date is not a blackout
    date, the same-day cutoff (only when *requested_date* is today), then
    the requested time against the opening window (inclusive on both ends).

    Raises:
        ValueError: if *requested_time* is not a valid ``HH:MM`` time.
    """
    day_hours = business_hours.for_day(requested_date)
    if day_hours is None or day_hours.closed:
        return AvailabilityResult(
            available=False,
            reason=f"Closed on {weekday_name(requested_date).capitalize()}",
        )

    if delivery_settings.is_blackout(requested_date):
        return AvailabilityResult(
            available=False,
            reason=f"Not available on {requested_date.isoformat()} (blackout date)",
        )

    if requested_date == now.date():
        cutoff = delivery_settings.same_day_cutoff
        if cutoff is None:
            return AvailabilityResult(
                available=False, reason="Same-day delivery not available"
            )
        if clock_hhmm(now) > cutoff:
            return AvailabilityResult(
                available=False,
                reason=f"Past same-day delivery cutoff ({cutoff})",
            )

    if requested_time is not None:
        if not is_time_within_range(
            normalize_hhmm(requested_time), day_hours.open, day_hours.close
        ):
            return AvailabilityResult(
                available=False,
                reason=(
                    "Delivery time outside operating hours "
                    f"({day_hours.open}-{day_hours.close})"
                ),
            )

    return AVAILABLE
