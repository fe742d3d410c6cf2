"""Order service layer (Use Cases).

Orchestrates order placement, status transitions and cancellation.
All write operations are atomic: the service defines the unit-of-work
boundary.

Business rules enforced:
- The florist must be active and able to fulfil the requested date/time
  (availability evaluator, including blackout dates).
- Delivery orders respect the florist's minimum order, delivery area and
  delivery slots; a slot's premium fee is added to the delivery fee.
- Status transitions are validated by the status machine and written
  with a compare-and-set, so concurrent updates never interleave.
- Every status change appends exactly one history record.
- Domain events are published only after the transaction commits.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.florists.availability import evaluate
from modules.florists.distance import check_delivery_eligibility
from modules.florists.exceptions import (
    ConfigurationError,
    FloristInactive,
    FloristNotFound,
)
from modules.florists.services import local_now
from modules.florists.slots import find_slot_by_label, open_slots, slot_has_capacity
from modules.orders import state_machine
from modules.orders.constants import STATUS_UPDATE_MAX_ATTEMPTS, DeliveryType, OrderStatus
from modules.orders.events import OrderPlaced, OrderStatusChanged
from modules.orders.exceptions import (
    BelowMinimumOrder,
    ConcurrencyConflict,
    FulfillmentUnavailable,
    InvalidOrderStatus,
    OrderNotFound,
    OutsideDeliveryArea,
    SlotUnavailable,
)
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.florists.dtos import DeliverySettings, DeliverySlot
    from modules.florists.geocoding import IDistanceProvider
    from modules.florists.models import Florist
    from modules.florists.repositories.interfaces import IFloristRepository
    from modules.orders.dtos import PlaceOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories, the distance provider, the clock and the event
    bus via constructor injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        florist_repository: IFloristRepository,
        distance_provider: Optional[IDistanceProvider] = None,
        clock: Optional[Callable[[], datetime]] = None,
        bus: Optional[IEventBus] = None,
    ) -> None:
        self._order_repo = order_repository
        self._florist_repo = florist_repository
        self._provider = distance_provider
        self._clock = clock or timezone.now
        self._bus = bus or event_bus

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def place_order(self, dto: PlaceOrderDTO) -> Order:
        """Place a new order after checking the florist can fulfil it.

        The florist row is locked for the duration of the transaction so
        slot capacity checks for one florist never race.

        Raises:
            FloristNotFound: florist does not exist.
            FloristInactive: florist is not taking orders.
            ConfigurationError: the florist's stored schedule is malformed.
            FulfillmentUnavailable: closed, past cutoff, outside hours,
                date in the past or delivery disabled.
            BelowMinimumOrder: subtotal below the delivery minimum.
            OutsideDeliveryArea: address outside the delivery area.
            SlotUnavailable: slot unknown, already started or full.
        """
        log = logger.bind(
            florist_id=str(dto.florist_id),
            delivery_type=dto.delivery_type,
            delivery_date=dto.delivery_date.isoformat(),
        )
        log.info("order.placement_started")

        florist = self._florist_repo.get_for_update(str(dto.florist_id))
        if not florist:
            raise FloristNotFound(f"Florist {dto.florist_id} not found.")
        if not florist.is_active:
            raise FloristInactive(f"Florist {dto.florist_id} is not taking orders.")

        settings = florist.get_delivery_settings()
        now = local_now(florist, self._clock())

        if dto.delivery_date < now.date():
            raise FulfillmentUnavailable("Delivery date is in the past")

        availability = evaluate(
            florist.get_business_hours(),
            settings,
            now,
            dto.delivery_date,
            dto.requested_time,
        )
        if not availability.available:
            log.info("order.fulfillment_unavailable", reason=availability.reason)
            raise FulfillmentUnavailable(availability.reason)

        delivery_fee = Decimal("0.00")
        if dto.delivery_type == DeliveryType.DELIVERY:
            self._check_delivery(florist, settings, dto)
            delivery_fee = settings.fee_per_order

        slot_label = ""
        if dto.delivery_time_slot:
            slot = self._reserve_slot(florist, dto, now)
            slot_label = slot.label
            if dto.delivery_type == DeliveryType.DELIVERY:
                delivery_fee += slot.premium_fee

        order = self._order_repo.create(
            {
                "florist_id": florist.id,
                "customer_id": dto.customer_id,
                "delivery_type": dto.delivery_type,
                "status": OrderStatus.PENDING,
                "delivery_date": dto.delivery_date,
                "delivery_time_slot": slot_label,
                "delivery_address": dto.delivery_address,
                "delivery_latitude": dto.delivery_latitude,
                "delivery_longitude": dto.delivery_longitude,
                "contact_email": dto.contact_email,
                "subtotal": dto.subtotal,
                "delivery_fee": delivery_fee,
                "total_amount": dto.subtotal + delivery_fee,
                "notes": dto.notes,
            }
        )
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PENDING,
            notes="Order placed",
        )

        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                florist_id=str(florist.id),
                delivery_type=str(dto.delivery_type),
            )
        )
        self._publish_on_commit(order)
        log.info("order.placed", order_id=str(order.id), slot=slot_label or None)
        return self._order_repo.get_by_id(str(order.id)) or order

    def update_status(
        self,
        order_id: UUID,
        new_status: str,
        notes: str = "",
    ) -> Order:
        """Transition an order to a new status.

        Each attempt locks the row, validates against the status machine
        and writes with a compare-and-set.  A lost race is retried once
        with a fresh read.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: transition is not allowed.
            ConcurrencyConflict: the order kept changing underneath us.
        """
        return self._transition(order_id, new_status, notes)

    def cancel_order(self, order_id: UUID, notes: str = "") -> Order:
        """Cancel an order from any non-terminal status.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is already delivered, picked up
                or cancelled.
            ConcurrencyConflict: the order kept changing underneath us.
        """
        return self._transition(
            order_id,
            OrderStatus.CANCELLED,
            notes or "Order cancelled",
            cancelling=True,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)

    def available_statuses(self, order_id: str) -> frozenset[str]:
        """Statuses the order may move to next."""
        order = self.get_order(order_id)
        return state_machine.next_statuses(order.status, order.delivery_type)

    # ------------------------------------------------------------------
    # Placement helpers
    # ------------------------------------------------------------------

    def _check_delivery(
        self, florist: Florist, settings: DeliverySettings, dto: PlaceOrderDTO
    ) -> None:
        if not florist.is_delivery_enabled:
            raise FulfillmentUnavailable("Delivery not available")
        if dto.subtotal < settings.minimum_order:
            raise BelowMinimumOrder(
                f"Minimum order for delivery is {settings.minimum_order}."
            )

        customer_location = dto.delivery_location
        if customer_location is None:
            return
        florist_location = florist.location
        if florist_location is None:
            raise ConfigurationError(f"Florist {florist.id} has no location configured.")
        eligibility = check_delivery_eligibility(
            settings, florist_location, customer_location, self._provider
        )
        if not eligibility.eligible:
            raise OutsideDeliveryArea(eligibility.reason)

    def _reserve_slot(
        self, florist: Florist, dto: PlaceOrderDTO, now: datetime
    ) -> DeliverySlot:
        label = dto.delivery_time_slot
        candidates = open_slots(florist.get_delivery_slots(), now, dto.delivery_date)
        slot = find_slot_by_label(candidates, label)
        if slot is None:
            raise SlotUnavailable(f"Delivery slot {label} is not available.")

        booked = self._order_repo.count_in_slot(florist.id, dto.delivery_date, slot.label)
        if not slot_has_capacity(slot, booked):
            raise SlotUnavailable(f"Delivery slot {label} is fully booked.")
        return slot

    # ------------------------------------------------------------------
    # Transition helpers
    # ------------------------------------------------------------------

    def _transition(
        self,
        order_id: UUID,
        new_status: str,
        notes: str,
        cancelling: bool = False,
    ) -> Order:
        for attempt in range(1, STATUS_UPDATE_MAX_ATTEMPTS + 1):
            try:
                return self._attempt_transition(order_id, new_status, notes, cancelling)
            except ConcurrencyConflict:
                if attempt == STATUS_UPDATE_MAX_ATTEMPTS:
                    logger.error(
                        "order.status_conflict_exhausted",
                        order_id=str(order_id),
                        new_status=new_status,
                        attempts=attempt,
                    )
                    raise
                logger.warning(
                    "order.status_conflict_retry",
                    order_id=str(order_id),
                    new_status=new_status,
                    attempt=attempt,
                )
        raise AssertionError("unreachable")

    @transaction.atomic
    def _attempt_transition(
        self,
        order_id: UUID,
        new_status: str,
        notes: str,
        cancelling: bool,
    ) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order_id),
            current_status=order.status,
            new_status=new_status,
        )

        if cancelling and not state_machine.can_cancel(order.status):
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

        result = state_machine.validate_transition(
            order.status, new_status, order.delivery_type
        )
        if not result.valid:
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(result.reason)

        old_status = order.status
        if not self._order_repo.compare_and_set_status(order.id, old_status, new_status):
            log.warning("order.status_conflict")
            raise ConcurrencyConflict(
                f"Order {order_id} changed status while updating to {new_status}."
            )

        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            notes=notes,
            old_status=old_status,
        )
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=old_status,
                new_status=str(new_status),
                notes=notes,
            )
        )
        self._publish_on_commit(order)
        log.info("order.status_updated")
        return self._order_repo.get_by_id(str(order_id))

    def _publish_on_commit(self, order: Order) -> None:
        events = order.domain_events
        order.clear_domain_events()
        transaction.on_commit(lambda: self._bus.publish_all(events))
