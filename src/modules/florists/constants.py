"""Florist domain constants.

Delivery distance modes and store lifecycle states, plus the numeric
limits used when validating a florist's delivery configuration.
"""

from decimal import Decimal

from django.db import models


class DistanceType(models.TextChoices):
    RADIUS = "radius", "Straight-line radius"
    DRIVING = "driving", "Driving distance"


class StoreStatus(models.TextChoices):
    PENDING = "pending", "Pending approval"
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


MAX_DELIVERY_RADIUS_KM = Decimal("100")

EARTH_RADIUS_KM = 6371.0

# Roads are typically ~30% longer than the straight line between two points.
STRAIGHT_LINE_TO_ROAD_RATIO = 1.3

AVERAGE_DELIVERY_SPEED_KMH = 30

DEFAULT_MAX_SEARCH_DISTANCE_KM = 50
