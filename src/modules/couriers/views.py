"""Courier API views.

The authenticated user is the courier: there is no way to act on
another user's profile.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.couriers.dtos import RegisterCourierDTO
from modules.couriers.exceptions import (
    CourierAlreadyRegistered,
    CourierBusy,
    CourierNotFound,
)
from modules.couriers.models import Courier
from modules.couriers.repositories import CourierDjangoRepository
from modules.couriers.serializers import CourierSerializer, RegisterCourierSerializer
from modules.couriers.services import CourierService


class CourierViewSet(GenericViewSet):
    queryset = Courier.objects.all()
    serializer_class = CourierSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CourierService(CourierDjangoRepository())

    def create(self, request: Request) -> Response:
        """POST /api/v1/couriers/ registers the caller as a courier."""
        serializer = RegisterCourierSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            courier = self._service.register(
                RegisterCourierDTO(
                    user_id=request.user.pk,
                    vehicle_type=serializer.validated_data["vehicle_type"],
                )
            )
        except CourierAlreadyRegistered as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        return Response(CourierSerializer(courier).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def me(self, request: Request) -> Response:
        """GET /api/v1/couriers/me/"""
        try:
            courier = self._service.get_courier(request.user.pk)
        except CourierNotFound:
            return Response(
                {"detail": "You are not registered as a courier."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(CourierSerializer(courier).data)

    @action(detail=False, methods=["post"], url_path="me/toggle")
    def toggle(self, request: Request) -> Response:
        """POST /api/v1/couriers/me/toggle/ flips offline <-> online."""
        try:
            courier = self._service.toggle_availability(request.user.pk)
        except CourierNotFound:
            return Response(
                {"detail": "You are not registered as a courier."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except CourierBusy as exc:
            return Response(
                {"detail": str(exc), "code": "conflict"},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(CourierSerializer(courier).data)
