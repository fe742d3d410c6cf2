"""Unit tests for Order and the append-only OrderStatusHistory."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import ImmutableHistoryError
from modules.orders.models import Order, OrderStatusHistory

pytestmark = pytest.mark.unit


@pytest.fixture()
def order(make_florist):
    return Order.objects.create(
        florist=make_florist(),
        delivery_type="delivery",
        delivery_date=date(2024, 6, 6),
        delivery_address="1 Main St",
        subtotal=Decimal("40.00"),
        total_amount=Decimal("45.00"),
    )


class TestOrder:
    def test_order_number_format(self, order):
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)

    def test_order_number_not_regenerated(self, order):
        number = order.order_number
        order.notes = "Leave at the door"
        order.save()
        assert order.order_number == number

    def test_order_number_retries_exhausted(self, order):
        with patch.object(Order, "generate_order_number", return_value=order.order_number):
            duplicate = Order(
                florist=order.florist,
                delivery_type="pickup",
                delivery_date=date(2024, 6, 6),
            )
            with pytest.raises(RuntimeError, match="order_number"):
                duplicate.save()

    def test_state_helpers_delegate_to_status_machine(self, order):
        assert order.status == OrderStatus.PENDING
        assert not order.is_terminal
        assert order.next_statuses() == {OrderStatus.CONFIRMED, OrderStatus.CANCELLED}
        assert order.can_transition_to("confirmed")
        assert not order.can_transition_to("delivered")

    def test_delivery_location(self, order):
        assert order.delivery_location is None
        order.delivery_latitude, order.delivery_longitude = 51.5, -0.12
        assert order.delivery_location.lat == 51.5

    def test_soft_delete_hides_order(self, order):
        order.delete()
        assert not Order.objects.alive().filter(pk=order.pk).exists()
        assert Order.objects.filter(pk=order.pk).exists()


class TestStatusHistoryImmutability:
    @pytest.fixture()
    def entry(self, order):
        return OrderStatusHistory.objects.create(
            order=order, new_status=OrderStatus.PENDING, notes="Order placed"
        )

    def test_insert_allowed(self, entry):
        assert OrderStatusHistory.objects.filter(pk=entry.pk).exists()

    def test_instance_update_rejected(self, entry):
        entry.notes = "rewritten"
        with pytest.raises(ImmutableHistoryError):
            entry.save()

    def test_instance_delete_rejected(self, entry):
        with pytest.raises(ImmutableHistoryError):
            entry.delete()

    def test_bulk_update_rejected(self, entry):
        with pytest.raises(ImmutableHistoryError):
            OrderStatusHistory.objects.filter(pk=entry.pk).update(notes="x")

    def test_bulk_delete_rejected(self, entry):
        with pytest.raises(ImmutableHistoryError):
            OrderStatusHistory.objects.all().delete()

    def test_history_is_ordered_oldest_first(self, order):
        order.status_history.create(new_status="pending")
        order.status_history.create(old_status="pending", new_status="confirmed")
        assert [h.new_status for h in order.status_history.all()] == [
            "pending",
            "confirmed",
        ]
