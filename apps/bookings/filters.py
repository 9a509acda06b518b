"""FilterSet definitions for booking listings."""

from __future__ import annotations

import django_filters  # type: ignore
from django.db.models import Q  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    """Filters accepted by the booking list operation."""

    status = django_filters.ChoiceFilter(field_name="status", choices=Booking.Status.choices)
    customer_id = django_filters.CharFilter(field_name="customer_id", lookup_expr="exact")
    car_id = django_filters.CharFilter(field_name="car_id", lookup_expr="exact")
    booking_reference = django_filters.CharFilter(field_name="booking_reference", lookup_expr="iexact")
    start_date_from = django_filters.DateFilter(field_name="start_date", lookup_expr="gte")
    start_date_to = django_filters.DateFilter(field_name="start_date", lookup_expr="lte")
    end_date_from = django_filters.DateFilter(field_name="end_date", lookup_expr="gte")
    end_date_to = django_filters.DateFilter(field_name="end_date", lookup_expr="lte")
    min_cost = django_filters.NumberFilter(field_name="total_estimated_cost", lookup_expr="gte")
    max_cost = django_filters.NumberFilter(field_name="total_estimated_cost", lookup_expr="lte")
    deposit_paid = django_filters.BooleanFilter(field_name="deposit_paid")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Booking
        fields = ["status", "customer_id", "car_id", "booking_reference"]

    def filter_search(self, queryset, name, value):  # type: ignore
        value = (value or "").strip()[:100]
        if not value:
            return queryset
        return queryset.filter(
            Q(booking_reference__icontains=value)
            | Q(pickup_location__icontains=value)
            | Q(dropoff_location__icontains=value)
            | Q(car_id__iexact=value)
        )
