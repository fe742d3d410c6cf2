"""Unit tests for FloristService and FloristSearchService.

The clock is pinned to Wednesday 2024-06-05 10:00 UTC.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from modules.florists.constants import DistanceType, StoreStatus
from modules.florists.dtos import Coordinates, FloristSearchDTO, UpdateScheduleDTO
from modules.florists.exceptions import ConfigurationError, FloristNotFound
from modules.florists.models import DeliverySlot, Florist
from modules.florists.repositories.django_repository import FloristDjangoRepository
from modules.florists.services import FloristSearchService, FloristService, local_now

pytestmark = pytest.mark.unit

NOW = datetime(2024, 6, 5, 10, 0, tzinfo=timezone.utc)
WEDNESDAY = date(2024, 6, 5)
THURSDAY = date(2024, 6, 6)
NEARBY = Coordinates(lat=51.5524, lng=-0.1278)


@pytest.fixture()
def service():
    return FloristService(FloristDjangoRepository(), clock=lambda: NOW)


@pytest.fixture()
def search_service():
    return FloristSearchService(FloristDjangoRepository(), clock=lambda: NOW)


class TestLocalNow:
    def test_converts_to_florist_zone(self, make_florist):
        florist = make_florist(timezone="Europe/London")
        assert local_now(florist, NOW).hour == 11

    def test_naive_moments_are_left_alone(self, make_florist):
        florist = make_florist(timezone="Asia/Tokyo")
        naive = datetime(2024, 6, 5, 10, 0)
        assert local_now(florist, naive) is naive

    def test_unknown_timezone_is_configuration_error(self, make_florist):
        florist = make_florist(timezone="Mars/Olympus")
        with pytest.raises(ConfigurationError, match="Mars/Olympus"):
            local_now(florist, NOW)


class TestUpdateSchedule:
    def test_replaces_all_parts(self, service, make_florist):
        florist = make_florist(slots=[{"name": "Old", "start_time": "08:00", "end_time": "09:00"}])

        updated = service.update_schedule(
            str(florist.id),
            {
                "business_hours": {"monday": {"open": "8:00", "close": "16:00"}},
                "delivery_settings": {
                    "radius_km": "15",
                    "fee_per_order": "7.50",
                    "same_day_cutoff": "12:00",
                    "distance_type": "driving",
                },
                "delivery_slots": [
                    {"name": "AM", "start": "09:00", "end": "12:00", "max_orders": 3}
                ],
            },
        )

        assert updated.business_hours == {
            "monday": {"open": "08:00", "close": "16:00", "closed": False}
        }
        assert updated.delivery_radius_km == Decimal("15.00")
        assert updated.delivery_fee == Decimal("7.50")
        assert updated.same_day_cutoff == "12:00"
        assert updated.distance_type == DistanceType.DRIVING
        assert [s.name for s in updated.get_delivery_slots()] == ["AM"]

    def test_untouched_parts_are_kept(self, service, make_florist):
        florist = make_florist(slots=[{"name": "Keep", "start_time": "09:00", "end_time": "10:00"}])

        service.update_schedule(str(florist.id), UpdateScheduleDTO(delivery_slots=None))

        florist.refresh_from_db()
        assert florist.same_day_cutoff == "14:00"
        assert DeliverySlot.objects.filter(florist=florist).count() == 1

    def test_invalid_payload_writes_nothing(self, service, make_florist):
        florist = make_florist()

        with pytest.raises(ConfigurationError):
            service.update_schedule(
                str(florist.id),
                {
                    "business_hours": {"monday": {"open": "08:00", "close": "16:00"}},
                    "delivery_settings": {"radius_km": "500"},
                },
            )

        florist.refresh_from_db()
        assert "tuesday" in florist.business_hours
        assert florist.delivery_radius_km == Decimal("10.00")

    def test_unknown_florist(self, service):
        with pytest.raises(FloristNotFound):
            service.update_schedule("00000000-0000-0000-0000-000000000000", {})


class TestAvailabilityQueries:
    def test_available_tomorrow(self, service, make_florist):
        florist = make_florist()
        assert service.check_availability(str(florist.id), THURSDAY, "10:00").available

    def test_local_clock_drives_cutoff(self, service, make_florist):
        # 10:00 UTC is 19:00 in Tokyo, past the 14:00 cutoff
        florist = make_florist(timezone="Asia/Tokyo")
        result = service.check_availability(str(florist.id), WEDNESDAY)
        assert result.available is False
        assert "cutoff" in result.reason

    def test_corrupt_hours_raise(self, service, make_florist):
        florist = make_florist(business_hours={"someday": {}})
        with pytest.raises(ConfigurationError):
            service.check_availability(str(florist.id), THURSDAY)

    def test_open_slots_same_day(self, service, make_florist):
        florist = make_florist(
            slots=[
                {"name": "AM", "start_time": "09:00", "end_time": "12:00"},
                {"name": "PM", "start_time": "13:00", "end_time": "17:00"},
            ]
        )
        assert [s.name for s in service.open_slots(str(florist.id), WEDNESDAY)] == ["PM"]
        assert [s.name for s in service.open_slots(str(florist.id), THURSDAY)] == [
            "AM",
            "PM",
        ]


class TestCheckDelivery:
    def test_inside_radius(self, service, make_florist):
        florist = make_florist()
        result = service.check_delivery(str(florist.id), NEARBY)
        assert result.eligible is True
        assert result.estimated_minutes == 11

    def test_delivery_disabled(self, service, make_florist):
        florist = make_florist(is_delivery_enabled=False)
        result = service.check_delivery(str(florist.id), NEARBY)
        assert result.eligible is False
        assert result.reason == "Delivery not available"

    def test_florist_without_location(self, service, make_florist):
        florist = make_florist(latitude=None, longitude=None)
        with pytest.raises(ConfigurationError, match="location"):
            service.check_delivery(str(florist.id), NEARBY)

    def test_driving_mode_uses_provider(self, make_florist):
        provider = MagicMock()
        provider.driving_distance_km.return_value = 25.0
        service = FloristService(
            FloristDjangoRepository(), distance_provider=provider, clock=lambda: NOW
        )
        florist = make_florist(distance_type=DistanceType.DRIVING)

        result = service.check_delivery(str(florist.id), NEARBY)

        assert result.eligible is False
        assert result.reason == "Outside delivery radius (25km)"


class TestSearch:
    def test_only_active_florists(self, search_service, make_florist):
        make_florist(store_name="Open Roses")
        make_florist(store_name="Pending Tulips", store_status=StoreStatus.PENDING)
        make_florist(store_name="Gone Lilies").delete()

        results = search_service.search(FloristSearchDTO(requested_date=THURSDAY))

        assert [r.florist.store_name for r in results] == ["Open Roses"]

    def test_name_query(self, search_service, make_florist):
        make_florist(store_name="Rose Garden")
        make_florist(store_name="Orchid House")

        results = search_service.search(
            FloristSearchDTO(query="rose", requested_date=THURSDAY)
        )

        assert [r.florist.store_name for r in results] == ["Rose Garden"]

    def test_excludes_unavailable(self, search_service, make_florist):
        make_florist(store_name="Weekday Only", business_hours={
            "wednesday": {"open": "09:00", "close": "17:00"},
        })
        make_florist(store_name="Every Day")

        results = search_service.search(FloristSearchDTO(requested_date=THURSDAY))

        assert [r.florist.store_name for r in results] == ["Every Day"]

    def test_defaults_to_today_on_florist_clock(self, search_service, make_florist):
        make_florist(store_name="Early Cutoff", same_day_cutoff="09:00")
        make_florist(store_name="Late Cutoff", same_day_cutoff="16:00")

        results = search_service.search(FloristSearchDTO())

        assert [r.florist.store_name for r in results] == ["Late Cutoff"]

    def test_delivery_search_filters_by_radius_and_sorts(self, search_service, make_florist):
        make_florist(store_name="Far", latitude=51.5974, longitude=-0.1278)
        make_florist(store_name="Near", latitude=51.5524, longitude=-0.1278)
        make_florist(store_name="Too Far", latitude=52.0, longitude=-0.1278)
        make_florist(store_name="No Delivery", is_delivery_enabled=False)

        results = search_service.search(
            FloristSearchDTO(
                latitude=51.5524,
                longitude=-0.1278,
                fulfillment="delivery",
                requested_date=THURSDAY,
            )
        )

        assert [r.florist.store_name for r in results] == ["Near", "Far"]
        assert results[0].distance_km == pytest.approx(0.0)
        assert results[1].estimated_minutes == 11

    def test_pickup_search_uses_max_distance(self, search_service, make_florist):
        make_florist(store_name="Central")
        make_florist(store_name="Oxford", latitude=51.752, longitude=-1.2577)
        make_florist(store_name="Nowhere", latitude=None, longitude=None)

        results = search_service.search(
            FloristSearchDTO(
                latitude=51.5074,
                longitude=-0.1278,
                fulfillment="pickup",
                requested_date=THURSDAY,
                max_distance_km=20,
            )
        )

        assert [r.florist.store_name for r in results] == ["Central"]
        assert results[0].estimated_minutes is None

    def test_misconfigured_florist_is_skipped(self, search_service, make_florist, caplog):
        broken = make_florist(store_name="Broken", same_day_cutoff="99:99")
        make_florist(store_name="Fine")

        with caplog.at_level(logging.WARNING):
            results = search_service.search(FloristSearchDTO(requested_date=THURSDAY))

        assert [r.florist.store_name for r in results] == ["Fine"]
        assert any(
            "florist.search_skipped" in r.getMessage() and str(broken.id) in r.getMessage()
            for r in caplog.records
        )

    def test_list_florists_passes_filters(self):
        repo = MagicMock()
        repo.list.return_value = []
        FloristService(repo).list_florists({"store_status": "active"})
        repo.list.assert_called_once_with({"store_status": "active"})


def test_florist_is_active_property(make_florist):
    assert make_florist().is_active
    assert not make_florist(store_status=StoreStatus.INACTIVE).is_active

    deleted = make_florist()
    deleted.delete()
    assert not deleted.is_active
    assert not Florist.objects.alive().filter(pk=deleted.pk).exists()
