"""Florist URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.florists.views import FloristViewSet

router = DefaultRouter(trailing_slash=True)
router.register("florists", FloristViewSet, basename="florist")

urlpatterns = router.urls
