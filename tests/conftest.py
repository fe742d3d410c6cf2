from datetime import date, timedelta
from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model

from rest_framework.test import APIClient

from modules.florists.constants import StoreStatus
from modules.florists.models import DeliverySlot, Florist
from shared.domain.timeutils import WEEKDAY_NAMES

User = get_user_model()

LONDON = {"latitude": 51.5074, "longitude": -0.1278}

OPEN_ALL_WEEK = {day: {"open": "09:00", "close": "18:00"} for day in WEEKDAY_NAMES}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def user():
    return User.objects.create_user(username="florist-tests", password="testpass123")


@pytest.fixture()
def auth_client(user):
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def future_date():
    """A date safely after "today" in any timezone."""
    return date.today() + timedelta(days=3)


@pytest.fixture()
def make_florist():
    """Factory for active florists open 09:00-18:00 every day in central London.

    ``slots`` takes a list of ``DeliverySlot`` field dicts.
    """

    def _make(**overrides):
        slots = overrides.pop("slots", [])
        data = {
            "store_name": "Petal & Stem",
            "store_status": StoreStatus.ACTIVE,
            "contact_email": "shop@petalandstem.example",
            "address": "1 Covent Garden, London",
            "timezone": "UTC",
            "business_hours": OPEN_ALL_WEEK,
            "is_delivery_enabled": True,
            "delivery_radius_km": Decimal("10.00"),
            "delivery_fee": Decimal("5.00"),
            "minimum_order": Decimal("20.00"),
            "same_day_cutoff": "14:00",
            **LONDON,
        }
        data.update(overrides)
        florist = Florist.objects.create(**data)
        for slot in slots:
            DeliverySlot.objects.create(florist=florist, **slot)
        return florist

    return _make
