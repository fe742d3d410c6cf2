"""Delivery distance rules.

Straight-line (haversine) distance, the road-distance estimate used when
no routing provider answers, and the delivery-radius eligibility check.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import structlog

from modules.florists.constants import (
    AVERAGE_DELIVERY_SPEED_KMH,
    EARTH_RADIUS_KM,
    STRAIGHT_LINE_TO_ROAD_RATIO,
    DistanceType,
)
from modules.florists.dtos import Coordinates, DeliverySettings
from modules.florists.exceptions import DistanceProviderError
from modules.florists.geocoding import IDistanceProvider

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    distance_km: float
    estimated_minutes: int
    reason: Optional[str] = None


def is_within_delivery_radius(distance_km: float, radius_km: float) -> bool:
    return distance_km <= radius_km


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two points, in kilometres."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat))
        * math.cos(math.radians(b.lat))
        * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def estimate_road_distance_km(straight_km: float) -> float:
    return straight_km * STRAIGHT_LINE_TO_ROAD_RATIO


def estimate_delivery_minutes(
    distance_km: float, average_speed_kmh: float = AVERAGE_DELIVERY_SPEED_KMH
) -> int:
    """Whole minutes to cover *distance_km*, rounded up."""
    return math.ceil(distance_km / average_speed_kmh * 60)


def _driving_distance_km(
    origin: Coordinates,
    destination: Coordinates,
    provider: Optional[IDistanceProvider],
) -> float:
    if provider is not None:
        try:
            return provider.driving_distance_km(origin, destination)
        except DistanceProviderError as exc:
            logger.warning("distance.provider_fallback", error=str(exc))
    else:
        logger.warning("distance.provider_fallback", error="no provider configured")
    return estimate_road_distance_km(haversine_km(origin, destination))


def check_delivery_eligibility(
    settings: DeliverySettings,
    florist_location: Coordinates,
    customer_location: Coordinates,
    provider: Optional[IDistanceProvider] = None,
) -> EligibilityResult:
    """Is *customer_location* inside the florist's delivery area?

    ``radius`` florists measure the straight line; ``driving`` florists ask
    *provider* for a road distance and fall back to the road estimate when
    it is unavailable.
    """
    if settings.distance_type == DistanceType.DRIVING:
        distance_km = _driving_distance_km(
            florist_location, customer_location, provider
        )
    else:
        distance_km = haversine_km(florist_location, customer_location)

    minutes = estimate_delivery_minutes(distance_km)
    if is_within_delivery_radius(distance_km, float(settings.radius_km)):
        return EligibilityResult(
            eligible=True, distance_km=distance_km, estimated_minutes=minutes
        )
    return EligibilityResult(
        eligible=False,
        distance_km=distance_km,
        estimated_minutes=minutes,
        reason=f"Outside delivery radius ({round(distance_km)}km)",
    )
