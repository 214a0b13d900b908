"""Delivery API views.

Exposes the delivery state machine and live tracking over HTTP.  The
authenticated user is the actor: the courier for claim / pickup /
deliver, any participant for cancel.  State-machine conflicts are 409
with ``code: "conflict"`` so clients know to refresh.  Pickup locations
are only shown to the seller and couriers.
"""

from __future__ import annotations

from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.couriers.exceptions import CourierNotFound
from modules.deliveries.constants import DeliveryStatus
from modules.deliveries.exceptions import (
    DeliveryConflict,
    DeliveryNotFound,
    NotDeliveryParticipant,
)
from modules.deliveries.filters import DeliveryOrderFilter
from modules.deliveries.models import DeliveryOrder
from modules.deliveries.repositories import DeliveryDjangoRepository
from modules.deliveries.serializers import (
    CancelDeliverySerializer,
    DeliveryOrderListSerializer,
    DeliveryOrderSerializer,
    TrackingSampleSerializer,
)
from modules.deliveries.services import build_delivery_service
from modules.tracking.dtos import TrackingSampleDTO
from modules.tracking.exceptions import TrackingUnavailable
from modules.tracking.repositories import TrackingDjangoRepository
from modules.tracking.services import TrackingService


def _conflict(exc: Exception) -> Response:
    return Response(
        {"detail": str(exc), "code": "conflict"}, status=status.HTTP_409_CONFLICT
    )


def _not_found() -> Response:
    return Response({"detail": "Delivery not found."}, status=status.HTTP_404_NOT_FOUND)


def _forbidden(detail: str) -> Response:
    return Response({"detail": detail}, status=status.HTTP_403_FORBIDDEN)


class DeliveryViewSet(GenericViewSet):
    queryset = DeliveryOrder.objects.all()
    filterset_class = DeliveryOrderFilter
    ordering_fields = ["created_at", "status", "delivery_fee_cents"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_delivery_service()
        self._tracking = TrackingService(
            TrackingDjangoRepository(), DeliveryDjangoRepository()
        )

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "tracking" if self.action == "tracking" else None
        return super().get_throttles()

    def get_queryset(self):
        user_id = self.request.user.pk
        return DeliveryOrder.objects.filter(
            Q(buyer_id=user_id) | Q(seller_id=user_id) | Q(courier_id=user_id)
        )

    def _render(self, delivery: DeliveryOrder) -> dict:
        serializer = DeliveryOrderSerializer(
            delivery, context=self.get_serializer_context()
        )
        return serializer.data

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/deliveries/ lists deliveries the caller takes part in."""
        queryset = self.filter_queryset(self.get_queryset())
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = DeliveryOrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/deliveries/{pk}/

        Participants see their deliveries; any courier may see a pending one.
        """
        try:
            delivery = self._service.get_delivery(pk)
        except DeliveryNotFound:
            return _not_found()
        if not delivery.is_participant(request.user.pk) and not (
            delivery.status == DeliveryStatus.PENDING
            and hasattr(request.user, "courier_profile")
        ):
            return _not_found()
        return Response(self._render(delivery))

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def claim(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/deliveries/{pk}/claim/

        The caller must be an online courier; offline or busy couriers get 409.
        """
        try:
            delivery = self._service.claim(pk, request.user.pk)
        except CourierNotFound:
            return _forbidden("You are not registered as a courier.")
        except DeliveryNotFound:
            return _not_found()
        except DeliveryConflict as exc:
            return _conflict(exc)
        return Response(self._render(delivery))

    @action(detail=True, methods=["post"])
    def pickup(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/deliveries/{pk}/pickup/"""
        try:
            delivery = self._service.confirm_pickup(pk, request.user.pk)
        except DeliveryNotFound:
            return _not_found()
        except DeliveryConflict as exc:
            return _conflict(exc)
        return Response(self._render(delivery))

    @action(detail=True, methods=["post"])
    def deliver(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/deliveries/{pk}/deliver/"""
        try:
            delivery = self._service.confirm_delivered(pk, request.user.pk)
        except DeliveryNotFound:
            return _not_found()
        except DeliveryConflict as exc:
            return _conflict(exc)
        return Response(self._render(delivery))

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/deliveries/{pk}/cancel/"""
        serializer = CancelDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            delivery = self._service.cancel(
                pk, request.user.pk, reason=serializer.validated_data["reason"]
            )
        except DeliveryNotFound:
            return _not_found()
        except NotDeliveryParticipant as exc:
            return _forbidden(str(exc))
        except DeliveryConflict as exc:
            return _conflict(exc)
        return Response(self._render(delivery))

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get", "post"])
    def tracking(self, request: Request, pk: str | None = None) -> Response:
        """GET|POST /api/v1/deliveries/{pk}/tracking/

        GET returns the latest sample (buyer or courier only).  POST lets
        the assigned courier publish a sample; an out-of-order sample is
        ignored and the stored one is returned.
        """
        stored = None
        if request.method == "POST":
            serializer = TrackingSampleSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            try:
                stored = self._tracking.record_sample(
                    pk, request.user.pk, TrackingSampleDTO(**serializer.validated_data)
                )
            except DeliveryNotFound:
                return _not_found()
            except DeliveryConflict as exc:
                return _conflict(exc)

        try:
            snapshot = self._tracking.latest_sample(pk, viewer_id=request.user.pk)
        except DeliveryNotFound:
            return _not_found()
        except NotDeliveryParticipant as exc:
            return _forbidden(str(exc))
        except TrackingUnavailable as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        code = status.HTTP_201_CREATED if stored is not None else status.HTTP_200_OK
        return Response(snapshot.model_dump(mode="json"), status=code)
