"""Dispatch API views.

``GET /api/v1/dispatch/`` returns the caller's courier dashboard:
profile, available deliveries near them and their own active ones.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.couriers.exceptions import CourierNotFound
from modules.couriers.repositories import CourierDjangoRepository
from modules.deliveries.repositories import DeliveryDjangoRepository
from modules.dispatch.builder import DispatchViewBuilder
from modules.dispatch.serializers import CourierLocationSerializer
from shared.domain.geo import Coordinate


class DispatchViewSet(GenericViewSet):
    throttle_scope = "dispatch"
    serializer_class = CourierLocationSerializer
    pagination_class = None

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._builder = DispatchViewBuilder(
            DeliveryDjangoRepository(), CourierDjangoRepository()
        )

    def list(self, request: Request) -> Response:
        query = CourierLocationSerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        location = Coordinate.maybe(params.get("lat"), params.get("lng"))

        try:
            dashboard = self._builder.dashboard(
                request.user.pk, location, params.get("limit")
            )
        except CourierNotFound:
            return Response(
                {"detail": "You are not registered as a courier."},
                status=status.HTTP_404_NOT_FOUND,
            )

        return Response(dashboard.model_dump(mode="json"))
