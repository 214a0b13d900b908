"""Dispatch URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.dispatch.views import DispatchViewSet

router = DefaultRouter(trailing_slash=True)
router.register("dispatch", DispatchViewSet, basename="dispatch")

urlpatterns = router.urls
