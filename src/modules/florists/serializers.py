"""Florist DRF serializers for API input/output.

Schedule updates are validated by the Pydantic value objects in
``dtos.py`` (through ``FloristService.update_schedule``), not here.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.florists.models import DeliverySlot, Florist
from modules.orders.constants import DeliveryType
from shared.domain.timeutils import is_valid_hhmm, normalize_hhmm

# ---------------------------------------------------------------------------
# Input Serializers (query strings)
# ---------------------------------------------------------------------------


class HHMMField(serializers.CharField):
    """24-hour ``HH:MM`` time, normalised to zero-padded form."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if not is_valid_hhmm(value):
            raise serializers.ValidationError("Time must be in 24-hour HH:MM format.")
        return normalize_hhmm(value)


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    time = HHMMField(required=False)


class DeliveryCheckQuerySerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class FloristSearchQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    lat = serializers.FloatField(required=False, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, min_value=-180, max_value=180)
    date = serializers.DateField(required=False)
    time = HHMMField(required=False)
    fulfillment = serializers.ChoiceField(choices=DeliveryType.choices, required=False)
    max_distance = serializers.FloatField(required=False, min_value=0.1)

    def validate(self, attrs):
        if ("lat" in attrs) != ("lng" in attrs):
            raise serializers.ValidationError("lat and lng must be provided together.")
        return attrs


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class DeliverySlotSerializer(serializers.ModelSerializer):
    label = serializers.CharField(read_only=True)

    class Meta:
        model = DeliverySlot
        fields = [
            "id",
            "name",
            "start_time",
            "end_time",
            "enabled",
            "max_orders",
            "premium_fee",
            "label",
        ]
        read_only_fields = fields


class OpenSlotSerializer(serializers.Serializer):
    """Serializes ``dtos.DeliverySlot`` value objects."""

    name = serializers.CharField()
    start = serializers.CharField()
    end = serializers.CharField()
    max_orders = serializers.IntegerField()
    premium_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    label = serializers.CharField()


class FloristListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Florist
        fields = [
            "id",
            "store_name",
            "store_status",
            "address",
            "latitude",
            "longitude",
            "is_delivery_enabled",
            "delivery_fee",
            "minimum_order",
        ]
        read_only_fields = fields


class FloristSerializer(serializers.ModelSerializer):
    """Read serializer for a florist with its full schedule."""

    delivery_slots = DeliverySlotSerializer(many=True, read_only=True)

    class Meta:
        model = Florist
        fields = [
            "id",
            "store_name",
            "store_status",
            "contact_email",
            "address",
            "latitude",
            "longitude",
            "timezone",
            "business_hours",
            "is_delivery_enabled",
            "delivery_radius_km",
            "delivery_fee",
            "minimum_order",
            "same_day_cutoff",
            "next_day_cutoff_enabled",
            "next_day_cutoff",
            "blackout_dates",
            "distance_type",
            "delivery_slots",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AvailabilitySerializer(serializers.Serializer):
    available = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)


class EligibilitySerializer(serializers.Serializer):
    eligible = serializers.BooleanField()
    distance_km = serializers.FloatField()
    estimated_minutes = serializers.IntegerField()
    reason = serializers.CharField(allow_null=True)


class FloristSearchResultSerializer(serializers.Serializer):
    florist = FloristListSerializer()
    distance_km = serializers.FloatField(allow_null=True)
    estimated_minutes = serializers.IntegerField(allow_null=True)
    availability = AvailabilitySerializer()
