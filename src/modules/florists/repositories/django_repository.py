"""Django ORM implementation of the Florist repository.

Returns ``None`` for missing florists; the Service Layer decides how to
translate that into a domain exception.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.florists import dtos
from modules.florists.constants import StoreStatus
from modules.florists.models import DeliverySlot, Florist
from modules.florists.repositories.interfaces import IFloristRepository

logger = structlog.get_logger(__name__)


class FloristDjangoRepository(IFloristRepository):
    """Concrete Florist repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Florist]:
        """Retrieve a non-deleted florist with its slots prefetched.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Florist.objects.alive()
                .prefetch_related("delivery_slots")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Florist]:
        """List non-deleted florists with optional Django ORM look-ups.

        Examples of valid filters::

            {"store_status": "active"}
            {"store_name__icontains": "rose"}
        """
        queryset = Florist.objects.alive().prefetch_related("delivery_slots")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_update(self, id: str) -> Optional[Florist]:
        """Lock the florist row; serializes slot bookings for one florist."""
        try:
            return (
                Florist.objects.select_for_update()
                .alive()
                .prefetch_related("delivery_slots")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list_active(self) -> List[Florist]:
        return self.list({"store_status": StoreStatus.ACTIVE})

    @transaction.atomic
    def save(self, entity: Florist) -> Florist:
        is_new = entity._state.adding
        entity.save()
        logger.info("florist.saved", florist_id=str(entity.id), is_new=is_new)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        florist = self.get_by_id(id)
        if not florist:
            return False
        florist.delete()
        logger.info("florist.soft_deleted", florist_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Delivery slots
    # ------------------------------------------------------------------

    def get_slots(self, florist_id: str) -> List[dtos.DeliverySlot]:
        return [
            slot.to_value()
            for slot in DeliverySlot.objects.filter(florist_id=florist_id)
        ]

    @transaction.atomic
    def replace_slots(
        self, florist_id: str, slots: Sequence[dtos.DeliverySlot]
    ) -> List[dtos.DeliverySlot]:
        DeliverySlot.objects.filter(florist_id=florist_id).delete()
        DeliverySlot.objects.bulk_create(
            [DeliverySlot.from_value(florist_id, slot) for slot in slots]
        )
        logger.info(
            "florist.slots_replaced", florist_id=str(florist_id), slot_count=len(slots)
        )
        return list(slots)
