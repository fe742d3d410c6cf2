"""Florist API views.

Exposes ``FloristService`` and ``FloristSearchService`` via HTTP.
Domain exceptions are translated into HTTP status codes here; an
"unavailable" answer is a normal 200 response carrying the reason.
"""

from __future__ import annotations

from django.conf import settings
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.florists.dtos import Coordinates, FloristSearchDTO
from modules.florists.exceptions import ConfigurationError, FloristNotFound
from modules.florists.filters import FloristFilter
from modules.florists.geocoding import get_distance_provider
from modules.florists.models import Florist
from modules.florists.repositories.django_repository import FloristDjangoRepository
from modules.florists.serializers import (
    AvailabilityQuerySerializer,
    AvailabilitySerializer,
    DeliveryCheckQuerySerializer,
    EligibilitySerializer,
    FloristListSerializer,
    FloristSearchQuerySerializer,
    FloristSearchResultSerializer,
    FloristSerializer,
    OpenSlotSerializer,
)
from modules.florists.services import FloristSearchService, FloristService

NOT_FOUND = {"detail": "Florist not found."}


class FloristViewSet(GenericViewSet):
    """ViewSet for florist schedules, availability and search.

    Florist profiles are read-only here; schedule changes go through
    the ``schedule`` action so they are validated as a whole.
    """

    queryset = Florist.objects.alive()
    filterset_class = FloristFilter
    ordering_fields = ["store_name", "created_at"]
    ordering = ["store_name", "id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        repository = FloristDjangoRepository()
        provider = get_distance_provider()
        self._service = FloristService(repository, distance_provider=provider)
        self._search = FloristSearchService(repository, distance_provider=provider)

    def get_throttles(self) -> list[BaseThrottle]:
        if self.action == "search":
            self.throttle_scope = "florist_search"
        elif self.action in {"availability", "delivery_check"}:
            self.throttle_scope = "florist_availability"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    def get_queryset(self):
        return Florist.objects.alive().prefetch_related("delivery_slots")

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/florists/"""
        queryset = self.filter_queryset(self.get_queryset())
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = FloristListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/florists/{pk}/"""
        try:
            florist = self._service.get_florist(pk)
        except FloristNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(FloristSerializer(florist).data)

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"])
    def schedule(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/florists/{pk}/schedule/

        Body may contain ``business_hours``, ``delivery_settings`` and/or
        ``delivery_slots``.  Nothing is written unless all of it is valid.
        """
        try:
            florist = self._service.update_schedule(pk, request.data)
        except FloristNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except ConfigurationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(FloristSerializer(florist).data)

    # ------------------------------------------------------------------
    # Availability / delivery area
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"])
    def availability(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/florists/{pk}/availability/?date=YYYY-MM-DD&time=HH:MM"""
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        requested_date = query.validated_data["date"]

        try:
            result = self._service.check_availability(
                pk, requested_date, query.validated_data.get("time")
            )
            slots = self._service.open_slots(pk, requested_date)
        except FloristNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except ConfigurationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        data = dict(AvailabilitySerializer(result).data)
        data["slots"] = OpenSlotSerializer(slots if result.available else [], many=True).data
        return Response(data)

    @action(detail=True, methods=["get"], url_path="delivery-check")
    def delivery_check(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/florists/{pk}/delivery-check/?lat=..&lng=.."""
        query = DeliveryCheckQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        coordinates = Coordinates(
            lat=query.validated_data["lat"], lng=query.validated_data["lng"]
        )

        try:
            result = self._service.check_delivery(pk, coordinates)
        except FloristNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except ConfigurationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        return Response(EligibilitySerializer(result).data)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"])
    def search(self, request: Request) -> Response:
        """GET /api/v1/florists/search/

        Query params: ``q``, ``lat``, ``lng``, ``date``, ``time``,
        ``fulfillment`` (delivery|pickup), ``max_distance`` (km).
        """
        query = FloristSearchQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        data = query.validated_data

        params = {
            "query": data.get("q") or None,
            "latitude": data.get("lat"),
            "longitude": data.get("lng"),
            "fulfillment": data.get("fulfillment"),
            "requested_date": data.get("date"),
            "requested_time": data.get("time"),
            "max_distance_km": data.get(
                "max_distance", settings.DEFAULT_MAX_SEARCH_DISTANCE_KM
            ),
        }
        results = self._search.search(FloristSearchDTO(**params))

        serializer = FloristSearchResultSerializer(results, many=True)
        return Response({"count": len(results), "results": serializer.data})
