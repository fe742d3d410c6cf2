"""Integration tests for the Orders API.

Covers placement (201 and every rejection status), reads, transitions,
status updates and the dedicated cancel action.  Dates are relative to
today because the views run on the real clock.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from rest_framework.test import APIClient

from modules.florists.constants import StoreStatus
from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def florist(make_florist):
    return make_florist(
        slots=[{"name": "Morning", "start_time": "09:00", "end_time": "12:00", "max_orders": 1}]
    )


@pytest.fixture()
def payload(florist, future_date):
    return {
        "florist_id": str(florist.id),
        "delivery_type": "delivery",
        "delivery_date": future_date.isoformat(),
        "delivery_address": "221B Baker Street, London",
        "delivery_latitude": 51.5237,
        "delivery_longitude": -0.1585,
        "contact_email": "customer@example.com",
        "subtotal": "45.00",
    }


@pytest.fixture()
def placed(auth_client, payload):
    response = auth_client.post(URL, payload, format="json")
    assert response.status_code == 201
    return response.json()


class TestAuth:
    def test_requires_authentication(self, payload):
        response = APIClient().post(URL, payload, format="json")
        assert response.status_code == 401


class TestCreate:
    def test_created(self, auth_client, payload, user):
        response = auth_client.post(URL, payload, format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["florist_name"] == "Petal & Stem"
        assert Decimal(body["delivery_fee"]) == Decimal("5.00")
        assert Decimal(body["total_amount"]) == Decimal("50.00")
        assert body["customer_id"] == user.pk
        assert [h["new_status"] for h in body["status_history"]] == ["pending"]

    def test_pickup_with_slot(self, auth_client, payload):
        payload.update(delivery_type="pickup", delivery_time_slot="9:00-12:00")
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 201
        assert response.json()["delivery_time_slot"] == "09:00-12:00"

    def test_missing_address_for_delivery(self, auth_client, payload):
        payload["delivery_address"] = ""
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400
        assert "delivery_address" in response.json()

    def test_invalid_slot_label(self, auth_client, payload):
        payload["delivery_time_slot"] = "12:00-09:00"
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400

    def test_unpaired_coordinates(self, auth_client, payload):
        del payload["delivery_longitude"]
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400

    def test_unknown_florist(self, auth_client, payload):
        payload["florist_id"] = "00000000-0000-0000-0000-000000000000"
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 404

    def test_inactive_florist(self, auth_client, payload, make_florist):
        payload["florist_id"] = str(
            make_florist(store_status=StoreStatus.INACTIVE).id
        )
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400
        assert response.json()["detail"] == "Florist is not taking orders."

    def test_closed_day(self, auth_client, payload, make_florist, future_date):
        payload["florist_id"] = str(make_florist(business_hours={}).id)
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400
        assert response.json()["detail"] == (
            f"Closed on {future_date.strftime('%A')}"
        )

    def test_outside_hours(self, auth_client, payload):
        payload["delivery_time"] = "20:00"
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400
        assert "09:00-18:00" in response.json()["detail"]

    def test_below_minimum(self, auth_client, payload):
        payload["subtotal"] = "10.00"
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400
        assert "Minimum order" in response.json()["detail"]

    def test_outside_delivery_area(self, auth_client, payload):
        payload.update(delivery_latitude=51.752, delivery_longitude=-1.2577)
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 422
        assert response.json()["detail"].startswith("Outside delivery radius")

    def test_slot_full(self, auth_client, payload):
        payload["delivery_time_slot"] = "09:00-12:00"
        assert auth_client.post(URL, payload, format="json").status_code == 201

        response = auth_client.post(URL, payload, format="json")

        assert response.status_code == 400
        assert "fully booked" in response.json()["detail"]

    def test_misconfigured_florist(self, auth_client, payload, make_florist):
        payload["florist_id"] = str(make_florist(same_day_cutoff="bad").id)
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 409

    def test_past_date(self, auth_client, payload, future_date):
        payload["delivery_date"] = (future_date - timedelta(days=10)).isoformat()
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400
        assert response.json()["detail"] == "Delivery date is in the past"


class TestRead:
    def test_list(self, auth_client, placed):
        response = auth_client.get(URL)
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["results"][0]["order_number"] == placed["order_number"]

    def test_list_filters_by_status(self, auth_client, placed):
        assert auth_client.get(URL, {"status": "pending"}).json()["count"] == 1
        assert auth_client.get(URL, {"status": "delivered"}).json()["count"] == 0

    def test_list_filters_by_delivery_type(self, auth_client, placed):
        assert auth_client.get(URL, {"delivery_type": "pickup"}).json()["count"] == 0

    def test_retrieve(self, auth_client, placed):
        response = auth_client.get(f"{URL}{placed['id']}/")
        assert response.status_code == 200
        assert response.json()["id"] == placed["id"]

    def test_retrieve_missing(self, auth_client):
        response = auth_client.get(f"{URL}00000000-0000-0000-0000-000000000000/")
        assert response.status_code == 404

    def test_transitions(self, auth_client, placed):
        response = auth_client.get(f"{URL}{placed['id']}/transitions/")
        assert response.json() == {
            "status": "pending",
            "next_statuses": ["cancelled", "confirmed"],
        }


class TestStatusUpdate:
    def test_valid_update(self, auth_client, placed):
        response = auth_client.patch(
            f"{URL}{placed['id']}/", {"status": "confirmed", "notes": "On it"}, format="json"
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "confirmed"
        assert body["status_history"][-1]["notes"] == "On it"

    def test_status_is_normalized(self, auth_client, placed):
        response = auth_client.patch(
            f"{URL}{placed['id']}/", {"status": " CONFIRMED "}, format="json"
        )
        assert response.status_code == 200

    def test_invalid_transition(self, auth_client, placed):
        response = auth_client.patch(
            f"{URL}{placed['id']}/", {"status": "delivered"}, format="json"
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot transition from pending to delivered"
        assert Order.objects.get(pk=placed["id"]).status == OrderStatus.PENDING

    def test_cancel_rejected_here(self, auth_client, placed):
        response = auth_client.patch(
            f"{URL}{placed['id']}/", {"status": "cancelled"}, format="json"
        )
        assert response.status_code == 400
        assert "/cancel/" in response.json()["detail"]

    def test_invalid_id(self, auth_client):
        response = auth_client.patch(f"{URL}not-a-uuid/", {"status": "confirmed"}, format="json")
        assert response.status_code == 400

    def test_missing_order(self, auth_client):
        response = auth_client.patch(
            f"{URL}00000000-0000-0000-0000-000000000000/",
            {"status": "confirmed"},
            format="json",
        )
        assert response.status_code == 404


class TestCancel:
    def test_cancel(self, auth_client, placed):
        response = auth_client.post(f"{URL}{placed['id']}/cancel/", {}, format="json")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["status_history"][-1]["notes"] == "Order cancelled"

    def test_cancel_twice(self, auth_client, placed):
        auth_client.post(f"{URL}{placed['id']}/cancel/", {}, format="json")
        response = auth_client.post(f"{URL}{placed['id']}/cancel/", {}, format="json")
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot cancel order in status cancelled."
