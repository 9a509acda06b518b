"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.api.authentication import caller_context

from .filters import BookingFilterSet
from .serializers import (
    AvailabilityRequestSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingUpdateSerializer,
    CancelBookingSerializer,
    ListQuerySerializer,
    PaginationQuerySerializer,
    page_payload,
)
from .services import get_booking_service

LIST_FILTER_PARAMS = tuple(BookingFilterSet.base_filters)


class BookingViewSet(viewsets.ViewSet):
    """Thin adapter: shapes are validated here, business rules live in BookingService."""

    permission_classes = [permissions.IsAuthenticated]

    def get_service(self):  # type: ignore
        return get_booking_service()

    def _respond(self, booking, http_status=status.HTTP_200_OK) -> Response:
        return Response(BookingSerializer(booking).data, status=http_status)

    def _paging(self, serializer_class=PaginationQuerySerializer) -> dict:
        serializer = serializer_class(data=self.request.query_params)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def list(self, request):  # type: ignore
        params = self._paging(ListQuerySerializer)
        filters = {
            name: request.query_params.get(name)
            for name in LIST_FILTER_PARAMS
            if request.query_params.get(name) not in (None, "")
        }
        page = self.get_service().list(
            filters,
            caller_context(request),
            page=params["page"],
            limit=params["limit"],
            sort_by=params["sort_by"],
            sort_order=params["sort_order"],
        )
        return Response(page_payload(page))

    def create(self, request):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = self.get_service().create(context=caller_context(request), **serializer.validated_data)
        return self._respond(booking, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):  # type: ignore
        booking = self.get_service().get(pk, caller_context(request))
        return self._respond(booking)

    def partial_update(self, request, pk=None):  # type: ignore
        serializer = BookingUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        booking = self.get_service().update(pk, serializer.validated_data, caller_context(request))
        return self._respond(booking)

    def destroy(self, request, pk=None):  # type: ignore
        self.get_service().delete(pk, caller_context(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        booking = self.get_service().confirm_booking(pk, caller_context(request))
        return self._respond(booking)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        serializer = CancelBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = self.get_service().cancel_booking(
            pk, serializer.validated_data["reason"], caller_context(request)
        )
        return self._respond(booking)

    @action(detail=True, methods=["post"])
    def convert(self, request, pk=None):  # type: ignore
        result = self.get_service().convert_to_contract(pk, caller_context(request))
        return Response({
            "booking": BookingSerializer(result.booking).data,
            "contract_id": result.contract_id,
        })

    @action(detail=False, methods=["post"])
    def availability(self, request):  # type: ignore
        serializer = AvailabilityRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        available = self.get_service().check_availability(
            data["car_id"], data["start_date"], data["end_date"]
        )
        return Response({
            "car_id": data["car_id"],
            "start_date": data["start_date"],
            "end_date": data["end_date"],
            "available": available,
        })

    @action(detail=False, methods=["get"])
    def upcoming(self, request):  # type: ignore
        bookings = self.get_service().get_upcoming_bookings(
            request.query_params.get("days", 7), caller_context(request)
        )
        return Response(BookingSerializer(bookings, many=True).data)

    @action(detail=False, methods=["get"])
    def expiring(self, request):  # type: ignore
        bookings = self.get_service().get_expiring_bookings(
            request.query_params.get("hours", 24), caller_context(request)
        )
        return Response(BookingSerializer(bookings, many=True).data)

    @action(detail=False, methods=["get"])
    def statistics(self, request):  # type: ignore
        return Response(self.get_service().get_statistics(caller_context(request)))

    @action(detail=False, methods=["get"], url_path=r"reference/(?P<reference>[^/]+)")
    def by_reference(self, request, reference=None):  # type: ignore
        booking = self.get_service().get_by_reference(reference, caller_context(request))
        return self._respond(booking)

    @action(detail=False, methods=["get"], url_path=r"customer/(?P<customer_id>[^/]+)")
    def by_customer(self, request, customer_id=None):  # type: ignore
        params = self._paging()
        page = self.get_service().list_by_customer(
            customer_id, caller_context(request), page=params["page"], limit=params["limit"]
        )
        return Response(page_payload(page))

    @action(detail=False, methods=["get"], url_path=r"car/(?P<car_id>[^/]+)")
    def by_car(self, request, car_id=None):  # type: ignore
        params = self._paging()
        page = self.get_service().list_by_car(
            car_id, caller_context(request), page=params["page"], limit=params["limit"]
        )
        return Response(page_payload(page))
