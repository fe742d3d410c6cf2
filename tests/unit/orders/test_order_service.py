"""Unit tests for OrderService.

The order repository and event bus are ``MagicMock`` objects; florists
are real rows so the schedule rules run against stored configuration.
The clock is pinned to Wednesday 2024-06-05 10:00 UTC.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from modules.florists.constants import StoreStatus
from modules.florists.exceptions import (
    ConfigurationError,
    FloristInactive,
    FloristNotFound,
)
from modules.florists.repositories.django_repository import FloristDjangoRepository
from modules.orders.constants import OrderStatus
from modules.orders.dtos import PlaceOrderDTO
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
from modules.orders.models import Order
from modules.orders.services import OrderService

pytestmark = pytest.mark.unit

NOW = datetime(2024, 6, 5, 10, 0, tzinfo=timezone.utc)
WEDNESDAY = date(2024, 6, 5)
THURSDAY = date(2024, 6, 6)

SLOTS = [
    {"name": "Morning", "start_time": "09:00", "end_time": "12:00", "max_orders": 2},
    {"name": "Afternoon", "start_time": "13:00", "end_time": "17:00"},
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def florist(make_florist):
    return make_florist(slots=SLOTS)


@pytest.fixture()
def order_repo():
    repo = MagicMock()
    repo.count_in_slot.return_value = 0

    def create(data):
        order = Order(**data)
        repo.get_by_id.return_value = order
        return order

    repo.create.side_effect = create
    return repo


@pytest.fixture()
def bus():
    return MagicMock()


@pytest.fixture()
def service(order_repo, bus):
    return OrderService(
        order_repository=order_repo,
        florist_repository=FloristDjangoRepository(),
        clock=lambda: NOW,
        bus=bus,
    )


def place(florist, **overrides) -> PlaceOrderDTO:
    data = {
        "florist_id": florist.id,
        "delivery_type": "delivery",
        "delivery_date": THURSDAY,
        "delivery_address": "221B Baker Street, London",
        "delivery_latitude": 51.5237,
        "delivery_longitude": -0.1585,
        "contact_email": "customer@example.com",
        "subtotal": Decimal("45.00"),
    }
    data.update(overrides)
    return PlaceOrderDTO(**data)


def existing_order(florist, status, delivery_type="delivery") -> Order:
    return Order(
        florist=florist,
        order_number="ORD-20240605-ABC123",
        status=status,
        delivery_type=delivery_type,
        delivery_date=THURSDAY,
    )


# ---------------------------------------------------------------------------
# place_order
# ---------------------------------------------------------------------------


class TestPlaceOrder:
    def test_delivery_order_adds_fee(self, service, order_repo, florist):
        order = service.place_order(place(florist))

        data = order_repo.create.call_args.args[0]
        assert data["status"] == OrderStatus.PENDING
        assert data["delivery_fee"] == Decimal("5.00")
        assert data["total_amount"] == Decimal("50.00")
        assert data["florist_id"] == florist.id
        assert order.total_amount == Decimal("50.00")

    def test_pickup_order_has_no_fee(self, service, order_repo, florist):
        service.place_order(
            place(
                florist,
                delivery_type="pickup",
                delivery_address="",
                delivery_latitude=None,
                delivery_longitude=None,
                subtotal=Decimal("5.00"),
            )
        )

        data = order_repo.create.call_args.args[0]
        assert data["delivery_fee"] == Decimal("0.00")
        assert data["total_amount"] == Decimal("5.00")

    def test_writes_initial_history(self, service, order_repo, florist):
        order = service.place_order(place(florist))
        order_repo.add_history.assert_called_once_with(
            order_id=order.id, status=OrderStatus.PENDING, notes="Order placed"
        )

    def test_event_published_after_commit(
        self, service, bus, florist, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            order = service.place_order(place(florist))
        bus.publish_all.assert_not_called()

        for callback in callbacks:
            callback()

        (events,) = bus.publish_all.call_args.args
        assert [type(e) for e in events] == [OrderPlaced]
        assert events[0].aggregate_id == order.id
        assert events[0].florist_id == str(florist.id)
        assert order.domain_events == []

    def test_unknown_florist(self, order_repo, bus):
        florist_repo = MagicMock()
        florist_repo.get_for_update.return_value = None
        service = OrderService(order_repo, florist_repo, clock=lambda: NOW, bus=bus)

        with pytest.raises(FloristNotFound):
            service.place_order(
                PlaceOrderDTO(
                    florist_id="00000000-0000-0000-0000-000000000001",
                    delivery_type="pickup",
                    delivery_date=THURSDAY,
                    subtotal=Decimal("10"),
                )
            )
        order_repo.create.assert_not_called()

    def test_inactive_florist(self, service, make_florist):
        florist = make_florist(store_status=StoreStatus.INACTIVE)
        with pytest.raises(FloristInactive):
            service.place_order(place(florist))

    def test_past_date(self, service, florist):
        with pytest.raises(FulfillmentUnavailable, match="past"):
            service.place_order(place(florist, delivery_date=date(2024, 6, 4)))

    def test_closed_day(self, service, make_florist):
        florist = make_florist(business_hours={"monday": {"open": "09:00", "close": "17:00"}})
        with pytest.raises(FulfillmentUnavailable, match="Closed on Thursday"):
            service.place_order(place(florist))

    def test_blackout_date(self, service, make_florist):
        florist = make_florist(blackout_dates=["2024-06-06"])
        with pytest.raises(FulfillmentUnavailable, match="blackout date"):
            service.place_order(place(florist))

    def test_same_day_past_cutoff(self, service, make_florist):
        florist = make_florist(same_day_cutoff="09:30")
        with pytest.raises(FulfillmentUnavailable, match="cutoff"):
            service.place_order(place(florist, delivery_date=WEDNESDAY))

    def test_time_outside_hours(self, service, florist):
        with pytest.raises(FulfillmentUnavailable, match="operating hours"):
            service.place_order(place(florist, delivery_time="19:00"))

    def test_delivery_disabled(self, service, make_florist, order_repo):
        florist = make_florist(is_delivery_enabled=False)
        with pytest.raises(FulfillmentUnavailable, match="Delivery not available"):
            service.place_order(place(florist))
        order_repo.create.assert_not_called()

    def test_below_minimum_order(self, service, florist):
        with pytest.raises(BelowMinimumOrder, match="20.00"):
            service.place_order(place(florist, subtotal=Decimal("19.99")))

    def test_minimum_does_not_apply_to_pickup(self, service, florist, order_repo):
        service.place_order(
            place(florist, delivery_type="pickup", subtotal=Decimal("1.00"))
        )
        order_repo.create.assert_called_once()

    def test_outside_delivery_area(self, service, florist):
        with pytest.raises(OutsideDeliveryArea, match="Outside delivery radius"):
            service.place_order(
                place(florist, delivery_latitude=51.752, delivery_longitude=-1.2577)
            )

    def test_florist_without_location(self, service, make_florist):
        florist = make_florist(latitude=None, longitude=None)
        with pytest.raises(ConfigurationError):
            service.place_order(place(florist))

    def test_delivery_without_coordinates_skips_area_check(
        self, service, make_florist, order_repo
    ):
        florist = make_florist(latitude=None, longitude=None)
        service.place_order(place(florist, delivery_latitude=None, delivery_longitude=None))
        order_repo.create.assert_called_once()

    def test_malformed_schedule(self, service, make_florist):
        florist = make_florist(business_hours={"monday": {"open": "18:00", "close": "09:00"}})
        with pytest.raises(ConfigurationError):
            service.place_order(place(florist))


class TestSlotReservation:
    def test_books_slot(self, service, order_repo, florist):
        service.place_order(place(florist, delivery_time_slot="9:00-12:00"))

        order_repo.count_in_slot.assert_called_once_with(
            florist.id, THURSDAY, "09:00-12:00"
        )
        assert order_repo.create.call_args.args[0]["delivery_time_slot"] == "09:00-12:00"

    def test_unknown_slot(self, service, florist):
        with pytest.raises(SlotUnavailable, match="not available"):
            service.place_order(place(florist, delivery_time_slot="10:00-11:00"))

    def test_full_slot(self, service, order_repo, florist):
        order_repo.count_in_slot.return_value = 2
        with pytest.raises(SlotUnavailable, match="fully booked"):
            service.place_order(place(florist, delivery_time_slot="09:00-12:00"))

    def test_started_slot_same_day(self, service, florist):
        with pytest.raises(SlotUnavailable):
            service.place_order(
                place(florist, delivery_date=WEDNESDAY, delivery_time_slot="09:00-12:00")
            )

    def test_later_slot_same_day(self, service, order_repo, florist):
        service.place_order(
            place(florist, delivery_date=WEDNESDAY, delivery_time_slot="13:00-17:00")
        )
        order_repo.create.assert_called_once()

    def test_no_slot_means_no_capacity_check(self, service, order_repo, florist):
        service.place_order(place(florist))
        order_repo.count_in_slot.assert_not_called()
        assert order_repo.create.call_args.args[0]["delivery_time_slot"] == ""

    def test_slot_premium_added_to_delivery_fee(self, service, order_repo, make_florist):
        florist = make_florist(
            slots=[
                {
                    "name": "Evening",
                    "start_time": "17:00",
                    "end_time": "18:00",
                    "premium_fee": Decimal("7.50"),
                }
            ]
        )

        service.place_order(place(florist, delivery_time_slot="17:00-18:00"))

        data = order_repo.create.call_args.args[0]
        assert data["delivery_fee"] == Decimal("12.50")
        assert data["total_amount"] == Decimal("57.50")

    def test_slot_premium_not_charged_for_pickup(
        self, service, order_repo, make_florist
    ):
        florist = make_florist(
            slots=[
                {
                    "name": "Evening",
                    "start_time": "17:00",
                    "end_time": "18:00",
                    "premium_fee": Decimal("7.50"),
                }
            ]
        )

        service.place_order(
            place(
                florist,
                delivery_type="pickup",
                delivery_address="",
                delivery_latitude=None,
                delivery_longitude=None,
                delivery_time_slot="17:00-18:00",
            )
        )

        data = order_repo.create.call_args.args[0]
        assert data["delivery_fee"] == Decimal("0.00")
        assert data["total_amount"] == Decimal("45.00")


# ---------------------------------------------------------------------------
# update_status / cancel_order
# ---------------------------------------------------------------------------


class TestUpdateStatus:
    def test_valid_transition(
        self, service, order_repo, bus, florist, django_capture_on_commit_callbacks
    ):
        order = existing_order(florist, OrderStatus.PENDING)
        order_repo.get_for_update.return_value = order
        order_repo.get_by_id.return_value = order
        order_repo.compare_and_set_status.return_value = True

        with django_capture_on_commit_callbacks(execute=True):
            result = service.update_status(order.id, "confirmed", notes="Accepted")

        assert result is order
        order_repo.compare_and_set_status.assert_called_once_with(
            order.id, OrderStatus.PENDING, "confirmed"
        )
        order_repo.add_history.assert_called_once_with(
            order_id=order.id,
            status="confirmed",
            notes="Accepted",
            old_status=OrderStatus.PENDING,
        )
        (events,) = bus.publish_all.call_args.args
        assert isinstance(events[0], OrderStatusChanged)
        assert (events[0].old_status, events[0].new_status) == ("pending", "confirmed")

    def test_invalid_transition(self, service, order_repo, florist):
        order_repo.get_for_update.return_value = existing_order(
            florist, OrderStatus.PENDING, "pickup"
        )

        with pytest.raises(InvalidOrderStatus, match="pending to ready_for_pickup"):
            service.update_status(order_repo.get_for_update.return_value.id, "ready_for_pickup")

        order_repo.compare_and_set_status.assert_not_called()
        order_repo.add_history.assert_not_called()

    def test_order_not_found(self, service, order_repo):
        order_repo.get_for_update.return_value = None
        with pytest.raises(OrderNotFound):
            service.update_status("00000000-0000-0000-0000-000000000002", "confirmed")

    def test_lost_race_is_retried_once(self, service, order_repo, florist, caplog):
        first = existing_order(florist, OrderStatus.CONFIRMED)
        second = existing_order(florist, OrderStatus.CONFIRMED)
        order_repo.get_for_update.side_effect = [first, second]
        order_repo.compare_and_set_status.side_effect = [False, True]
        order_repo.get_by_id.return_value = second

        with caplog.at_level(logging.WARNING):
            result = service.update_status(first.id, "preparing")

        assert result is second
        assert order_repo.compare_and_set_status.call_count == 2
        order_repo.add_history.assert_called_once()
        assert any("order.status_conflict_retry" in r.getMessage() for r in caplog.records)

    def test_retry_revalidates_fresh_status(self, service, order_repo, florist):
        order_repo.get_for_update.side_effect = [
            existing_order(florist, OrderStatus.CONFIRMED),
            existing_order(florist, OrderStatus.PREPARING),
        ]
        order_repo.compare_and_set_status.return_value = False

        with pytest.raises(InvalidOrderStatus, match="preparing to preparing"):
            service.update_status("00000000-0000-0000-0000-000000000004", "preparing")

        assert order_repo.compare_and_set_status.call_count == 1

    def test_conflict_surfaces_after_retry(self, service, order_repo, bus, florist):
        order_repo.get_for_update.side_effect = lambda order_id: existing_order(
            florist, OrderStatus.CONFIRMED
        )
        order_repo.compare_and_set_status.return_value = False

        with pytest.raises(ConcurrencyConflict):
            service.update_status("00000000-0000-0000-0000-000000000003", "preparing")

        assert order_repo.compare_and_set_status.call_count == 2
        order_repo.add_history.assert_not_called()
        bus.publish_all.assert_not_called()


class TestCancelOrder:
    def test_cancel_out_for_delivery(self, service, order_repo, florist):
        order = existing_order(florist, OrderStatus.OUT_FOR_DELIVERY)
        order_repo.get_for_update.return_value = order
        order_repo.compare_and_set_status.return_value = True

        service.cancel_order(order.id)

        order_repo.compare_and_set_status.assert_called_once_with(
            order.id, OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED
        )
        assert order_repo.add_history.call_args.kwargs["notes"] == "Order cancelled"

    def test_cancel_keeps_given_notes(self, service, order_repo, florist):
        order = existing_order(florist, OrderStatus.PENDING, "pickup")
        order_repo.get_for_update.return_value = order
        order_repo.compare_and_set_status.return_value = True

        service.cancel_order(order.id, notes="Customer changed their mind")

        assert order_repo.add_history.call_args.kwargs["notes"] == (
            "Customer changed their mind"
        )

    @pytest.mark.parametrize("status", ["delivered", "picked_up", "cancelled"])
    def test_cannot_cancel_terminal(self, service, order_repo, florist, status):
        order_repo.get_for_update.return_value = existing_order(florist, status)
        with pytest.raises(InvalidOrderStatus, match=f"Cannot cancel order in status {status}"):
            service.cancel_order(order_repo.get_for_update.return_value.id)
        order_repo.compare_and_set_status.assert_not_called()


class TestQueries:
    def test_get_order_not_found(self, service, order_repo):
        order_repo.get_by_id.return_value = None
        with pytest.raises(OrderNotFound):
            service.get_order("missing")

    def test_available_statuses(self, service, order_repo, florist):
        order_repo.get_by_id.return_value = existing_order(
            florist, OrderStatus.PREPARING, "pickup"
        )
        assert service.available_statuses("any") == {
            OrderStatus.READY_FOR_PICKUP,
            OrderStatus.CANCELLED,
        }

    def test_list_orders_passes_filters(self, service, order_repo):
        order_repo.list.return_value = []
        assert service.list_orders({"status": "pending"}) == []
        order_repo.list.assert_called_once_with({"status": "pending"})
