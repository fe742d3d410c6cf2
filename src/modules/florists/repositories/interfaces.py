"""Florist repository interface.

Extends ``IRepository[Florist]`` with the look-ups the schedule, search
and order-placement rules need.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, List, Optional, Sequence

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.florists import dtos
    from modules.florists.models import Florist


class IFloristRepository(IRepository["Florist"]):
    """Repository contract for the Florist aggregate (profile + slots)."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Florist]:
        """Retrieve a florist holding a row-level lock (``SELECT FOR UPDATE``)."""

    @abstractmethod
    def list_active(self) -> List[Florist]:
        """Active, non-deleted florists with their slots loaded."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete a florist; ``False`` when it does not exist."""

    @abstractmethod
    def get_slots(self, florist_id: str) -> List[dtos.DeliverySlot]:
        """The florist's delivery slots as value objects."""

    @abstractmethod
    def replace_slots(
        self, florist_id: str, slots: Sequence[dtos.DeliverySlot]
    ) -> List[dtos.DeliverySlot]:
        """Replace every delivery slot of the florist."""
