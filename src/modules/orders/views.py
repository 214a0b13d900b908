"""Purchase order API views.

Exposes ``PurchaseOrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into HTTP status codes.
Every endpoint is scoped to the authenticated buyer: another buyer's
order is reported as not found.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.deliveries.services import build_delivery_service
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.exceptions import (
    InvalidPurchaseOrderStatus,
    NoPendingOrder,
    PurchaseOrderNotFound,
)
from modules.orders.filters import PurchaseOrderFilter
from modules.orders.models import PurchaseOrder
from modules.orders.repositories import PurchaseOrderDjangoRepository
from modules.orders.serializers import (
    PlaceOrderSerializer,
    PurchaseOrderListSerializer,
    PurchaseOrderSerializer,
    ResolveHandoffSerializer,
)
from modules.orders.services import FinalizeResult, PurchaseOrderService
from modules.tracking.storage import CacheKeyValueStore


def _not_found() -> Response:
    return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)


def _conflict(exc: Exception) -> Response:
    return Response(
        {"detail": str(exc), "code": "conflict"}, status=status.HTTP_409_CONFLICT
    )


def _finalize_response(result: FinalizeResult) -> Response:
    body = PurchaseOrderSerializer(result.order).data
    body["already_paid"] = result.already_paid
    body["warning"] = result.warning
    return Response(body)


class PurchaseOrderViewSet(GenericViewSet):
    queryset = PurchaseOrder.objects.all()
    filterset_class = PurchaseOrderFilter
    ordering_fields = ["created_at", "total_cents", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = PurchaseOrderService(
            order_repository=PurchaseOrderDjangoRepository(),
            delivery_creator=build_delivery_service(),
            store=CacheKeyValueStore(),
        )

    def get_queryset(self):
        return PurchaseOrder.objects.filter(buyer_id=self.request.user.pk)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Records the cart as ``pending_payment`` and remembers it as the
        buyer's pending order for the payment handoff.
        """
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = PlaceOrderDTO(
                buyer_id=request.user.pk,
                delivery_method=data["delivery_method"],
                delivery_address=data["delivery_address"],
                delivery_lat=data["delivery_lat"],
                delivery_lng=data["delivery_lng"],
                tax_cents=data["tax_cents"],
                delivery_fee_cents=data["delivery_fee_cents"],
                items=[PlaceOrderItemDTO(**item) for item in data["items"]],
            )
        except ValidationError as exc:
            return Response(
                {"detail": [error["msg"] for error in exc.errors()]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        order = self._service.place_order(dto)
        return Response(
            PurchaseOrderSerializer(order).data, status=status.HTTP_201_CREATED
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/"""
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = PurchaseOrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk, request.user.pk)
        except PurchaseOrderNotFound:
            return _not_found()
        return Response(PurchaseOrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def finalize(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/finalize/

        Confirms payment.  Safe to replay: a paid order answers with
        ``already_paid: true`` and its existing deliveries.
        """
        try:
            result = self._service.finalize_payment(pk, request.user.pk)
        except PurchaseOrderNotFound:
            return _not_found()
        except InvalidPurchaseOrderStatus as exc:
            return _conflict(exc)
        return _finalize_response(result)

    @action(detail=False, methods=["post"], url_path="resume")
    def resume(self, request: Request) -> Response:
        """POST /api/v1/orders/resume/

        For a buyer returning from the payment provider without a reliable
        order id.  The id is looked up from the query string, the body's
        navigation parameter, the stored pending order, then the latest
        ``pending_payment`` order; the match is then finalized.
        """
        serializer = ResolveHandoffSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        route_params = {}
        navigation_id = serializer.validated_data.get("navigation_order_id")
        if navigation_id:
            route_params["order_id"] = navigation_id
        query_params = dict(request.query_params.items())
        if "order_id" not in query_params and serializer.validated_data.get(
            "order_id"
        ):
            query_params["order_id"] = serializer.validated_data["order_id"]

        try:
            order = self._service.resolve_handoff(
                request.user.pk, query_params=query_params, route_params=route_params
            )
            result = self._service.finalize_payment(order.pk, request.user.pk)
        except NoPendingOrder as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except PurchaseOrderNotFound:
            return _not_found()
        except InvalidPurchaseOrderStatus as exc:
            return _conflict(exc)
        return _finalize_response(result)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels the order.  Its delivery rows are cancelled afterwards by
        a background task, so the response may still show them open.
        """
        try:
            order = self._service.cancel_order(pk, request.user.pk)
        except PurchaseOrderNotFound:
            return _not_found()
        except InvalidPurchaseOrderStatus as exc:
            return _conflict(exc)
        return Response(PurchaseOrderSerializer(order).data)
