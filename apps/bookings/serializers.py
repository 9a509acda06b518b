"""Serializers for the booking domain."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers  # type: ignore

from .domain.pricing import EXTRA_TYPES, MAX_EXTRA_PRICE_PER_DAY, MAX_EXTRA_QUANTITY
from .models import Booking
from .repository import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


class BookingExtraSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=EXTRA_TYPES)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_EXTRA_QUANTITY)
    price_per_day = serializers.DecimalField(
        max_digits=8,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=MAX_EXTRA_PRICE_PER_DAY,
    )


class BookingCreateSerializer(serializers.Serializer):
    """Request body of ``POST /bookings/``."""

    customer_id = serializers.CharField(max_length=64)
    car_id = serializers.CharField(max_length=64)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    pickup_location = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    dropoff_location = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    extras = BookingExtraSerializer(many=True, required=False)
    additional_drivers = serializers.ListField(
        child=serializers.CharField(max_length=100), required=False
    )
    deposit_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False
    )


class BookingUpdateSerializer(serializers.Serializer):
    """Partial update; only the fields sent are changed."""

    car_id = serializers.CharField(max_length=64, required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    pickup_location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    dropoff_location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    extras = BookingExtraSerializer(many=True, required=False)
    additional_drivers = serializers.ListField(
        child=serializers.CharField(max_length=100), required=False
    )
    deposit_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False
    )
    deposit_paid = serializers.BooleanField(required=False)

    def validate(self, attrs):  # type: ignore
        if not attrs:
            raise serializers.ValidationError("Provide at least one field to update.")
        return attrs


class CancelBookingSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class AvailabilityRequestSerializer(serializers.Serializer):
    car_id = serializers.CharField(max_length=64)
    start_date = serializers.DateField()
    end_date = serializers.DateField()


class PaginationQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, required=False, default=DEFAULT_PAGE_SIZE)

    def validate_limit(self, value):  # type: ignore
        return min(value, MAX_PAGE_SIZE)


class ListQuerySerializer(PaginationQuerySerializer):
    sort_by = serializers.CharField(required=False, default="created_at")
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="desc")


class BookingSerializer(serializers.ModelSerializer):
    """Read representation of a booking."""

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_reference",
            "customer_id",
            "car_id",
            "start_date",
            "end_date",
            "pickup_location",
            "dropoff_location",
            "notes",
            "additional_drivers",
            "extras",
            "status",
            "daily_rate",
            "currency",
            "total_estimated_cost",
            "deposit_amount",
            "deposit_paid",
            "expires_at",
            "confirmed_at",
            "cancelled_at",
            "cancellation_reason",
            "expired_at",
            "converted_at",
            "contract_id",
            "created_by",
            "updated_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


def page_payload(page, context=None) -> dict:
    return {
        "data": BookingSerializer(page.data, many=True, context=context or {}).data,
        "total": page.total,
        "page": page.page,
        "limit": page.limit,
        "pages": page.pages,
    }
