"""Purchase order URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.orders.views import PurchaseOrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", PurchaseOrderViewSet, basename="order")

urlpatterns = router.urls
