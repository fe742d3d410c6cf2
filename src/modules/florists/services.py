"""Florist service layer (Use Cases).

``FloristService`` manages a florist's schedule and answers availability,
delivery-area and slot questions for a single florist.
``FloristSearchService`` finds florists that can fulfil a request.

Both receive the repository, the driving-distance provider and a clock
via constructor injection.  "Now" is always the clock's instant converted
to the florist's own timezone before it reaches the pure rules.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

import structlog
from django.db import transaction
from django.utils import timezone

from modules.florists.availability import AvailabilityResult, evaluate
from modules.florists.constants import StoreStatus
from modules.florists.distance import (
    EligibilityResult,
    check_delivery_eligibility,
    haversine_km,
)
from modules.florists.dtos import (
    Coordinates,
    DeliverySlot,
    FloristSearchDTO,
    UpdateScheduleDTO,
)
from modules.florists.exceptions import ConfigurationError, FloristNotFound
from modules.florists.slots import open_slots
from modules.orders.constants import DeliveryType

if TYPE_CHECKING:
    from modules.florists.geocoding import IDistanceProvider
    from modules.florists.models import Florist
    from modules.florists.repositories.interfaces import IFloristRepository

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def local_now(florist: Florist, moment: datetime) -> datetime:
    """*moment* on the florist's wall clock (naive moments are taken as-is)."""
    if timezone.is_naive(moment):
        return moment
    return florist.local_time(moment)


class FloristService:
    """Application service for a single florist's schedule and rules."""

    def __init__(
        self,
        repository: IFloristRepository,
        distance_provider: Optional[IDistanceProvider] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._repo = repository
        self._provider = distance_provider
        self._clock = clock or timezone.now

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_schedule(
        self, florist_id: str, dto: Union[UpdateScheduleDTO, Dict[str, Any]]
    ) -> Florist:
        """Replace business hours, delivery settings and/or slots.

        Everything is validated before anything is written.

        Raises:
            FloristNotFound: florist does not exist.
            ConfigurationError: any part of the schedule is malformed.
        """
        schedule = UpdateScheduleDTO.from_payload(dto)
        florist = self.get_florist(florist_id)
        log = logger.bind(florist_id=str(florist.id))

        changed = []
        if schedule.business_hours is not None:
            florist.business_hours = schedule.business_hours.to_mapping()
            changed.append("business_hours")
        if schedule.delivery_settings is not None:
            florist.apply_delivery_settings(schedule.delivery_settings)
            changed.append("delivery_settings")
        if changed:
            self._repo.save(florist)
        if schedule.delivery_slots is not None:
            self._repo.replace_slots(florist.id, schedule.delivery_slots)
            changed.append("delivery_slots")

        log.info("florist.schedule_updated", changed=changed)
        return self.get_florist(str(florist.id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_florist(self, florist_id: str) -> Florist:
        """Retrieve a single florist by ID.

        Raises:
            FloristNotFound: if the florist does not exist.
        """
        florist = self._repo.get_by_id(florist_id)
        if not florist:
            raise FloristNotFound(f"Florist {florist_id} not found.")
        return florist

    def list_florists(self, filters: Optional[Dict[str, Any]] = None) -> List[Florist]:
        return self._repo.list(filters)

    def check_availability(
        self,
        florist_id: str,
        requested_date: date,
        requested_time: Optional[str] = None,
    ) -> AvailabilityResult:
        florist = self.get_florist(florist_id)
        now = local_now(florist, self._clock())
        result = evaluate(
            florist.get_business_hours(),
            florist.get_delivery_settings(),
            now,
            requested_date,
            requested_time,
        )
        logger.info(
            "florist.availability_checked",
            florist_id=str(florist.id),
            requested_date=requested_date.isoformat(),
            available=result.available,
            reason=result.reason,
        )
        return result

    def check_delivery(
        self, florist_id: str, coordinates: Coordinates
    ) -> EligibilityResult:
        """Can the florist deliver to *coordinates*?

        Raises:
            ConfigurationError: the florist has no location.
        """
        florist = self.get_florist(florist_id)
        location = florist.location
        if location is None:
            raise ConfigurationError(
                f"Florist {florist.id} has no location configured."
            )
        result = check_delivery_eligibility(
            florist.get_delivery_settings(), location, coordinates, self._provider
        )
        if not florist.is_delivery_enabled:
            result = replace(result, eligible=False, reason="Delivery not available")
        return result

    def open_slots(self, florist_id: str, requested_date: date) -> List[DeliverySlot]:
        florist = self.get_florist(florist_id)
        now = local_now(florist, self._clock())
        return open_slots(florist.get_delivery_slots(), now, requested_date)


@dataclass(frozen=True)
class FloristSearchResult:
    florist: Florist
    availability: AvailabilityResult
    distance_km: Optional[float] = None
    estimated_minutes: Optional[int] = None


class FloristSearchService:
    """Find active florists able to fulfil a request.

    With customer coordinates, results are limited to
    ``dto.max_distance_km`` (and to the delivery area for delivery
    requests) and sorted nearest first.
    """

    def __init__(
        self,
        repository: IFloristRepository,
        distance_provider: Optional[IDistanceProvider] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._repo = repository
        self._provider = distance_provider
        self._clock = clock or timezone.now

    def search(
        self, dto: FloristSearchDTO, now: Optional[datetime] = None
    ) -> List[FloristSearchResult]:
        moment = now or self._clock()
        filters: Dict[str, Any] = {"store_status": StoreStatus.ACTIVE}
        if dto.query:
            filters["store_name__icontains"] = dto.query
        if dto.fulfillment == DeliveryType.DELIVERY:
            filters["is_delivery_enabled"] = True

        results = []
        for florist in self._repo.list(filters):
            try:
                result = self._match(florist, dto, moment)
            except ConfigurationError as exc:
                logger.warning(
                    "florist.search_skipped",
                    florist_id=str(florist.id),
                    error=str(exc),
                )
                continue
            if result is not None:
                results.append(result)

        if dto.coordinates is not None:
            results.sort(key=lambda r: r.distance_km)

        logger.info(
            "florist.search_completed",
            result_count=len(results),
            fulfillment=dto.fulfillment,
            has_location=dto.coordinates is not None,
        )
        return results

    def _match(
        self, florist: Florist, dto: FloristSearchDTO, moment: datetime
    ) -> Optional[FloristSearchResult]:
        distance_km = None
        minutes = None
        customer = dto.coordinates
        if customer is not None:
            location = florist.location
            if location is None:
                return None
            if dto.fulfillment == DeliveryType.DELIVERY:
                eligibility = check_delivery_eligibility(
                    florist.get_delivery_settings(), location, customer, self._provider
                )
                if not eligibility.eligible:
                    return None
                distance_km = eligibility.distance_km
                minutes = eligibility.estimated_minutes
            else:
                distance_km = haversine_km(location, customer)
            if distance_km > dto.max_distance_km:
                return None

        now = local_now(florist, moment)
        availability = evaluate(
            florist.get_business_hours(),
            florist.get_delivery_settings(),
            now,
            dto.requested_date or now.date(),
            dto.requested_time,
        )
        if not availability.available:
            return None
        return FloristSearchResult(
            florist=florist,
            availability=availability,
            distance_km=distance_km,
            estimated_minutes=minutes,
        )
