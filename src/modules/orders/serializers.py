"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.florists.serializers import HHMMField
from modules.florists.slots import parse_slot_label
from modules.orders.constants import DeliveryType
from modules.orders.models import Order, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class PlaceOrderSerializer(serializers.Serializer):
    """Validates the order placement request payload."""

    florist_id = serializers.UUIDField()
    delivery_type = serializers.ChoiceField(choices=DeliveryType.choices)
    delivery_date = serializers.DateField()
    delivery_time = HHMMField(required=False)
    delivery_time_slot = serializers.CharField(required=False, allow_blank=True)
    delivery_address = serializers.CharField(required=False, default="", allow_blank=True)
    delivery_latitude = serializers.FloatField(required=False, min_value=-90, max_value=90)
    delivery_longitude = serializers.FloatField(
        required=False, min_value=-180, max_value=180
    )
    contact_email = serializers.EmailField(required=False, default="", allow_blank=True)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    notes = serializers.CharField(required=False, default="", allow_blank=True)

    def validate_delivery_time_slot(self, value: str) -> str:
        if not value:
            return value
        try:
            start, end = parse_slot_label(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return f"{start}-{end}"

    def validate(self, attrs):
        if ("delivery_latitude" in attrs) != ("delivery_longitude" in attrs):
            raise serializers.ValidationError(
                "delivery_latitude and delivery_longitude must be provided together."
            )
        if attrs["delivery_type"] == DeliveryType.DELIVERY and not attrs.get(
            "delivery_address", ""
        ).strip():
            raise serializers.ValidationError(
                {"delivery_address": "Delivery orders require a delivery address."}
            )
        return attrs


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested status history."""

    florist_name = serializers.CharField(source="florist.store_name", read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "florist_id",
            "florist_name",
            "customer_id",
            "delivery_type",
            "status",
            "delivery_date",
            "delivery_time_slot",
            "delivery_address",
            "delivery_latitude",
            "delivery_longitude",
            "contact_email",
            "subtotal",
            "delivery_fee",
            "total_amount",
            "notes",
            "created_at",
            "updated_at",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "florist_id",
            "delivery_type",
            "status",
            "delivery_date",
            "delivery_time_slot",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields
