"""Main API URL router for /api/v1/."""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from api.v1 import closing_views as closing_api_views

router = DefaultRouter()
router.register(r'team-closings', closing_api_views.TeamClosingViewSet, basename='team-closing')
router.register(r'closing-adjustments', closing_api_views.ClosingAdjustmentViewSet, basename='closing-adjustment')

urlpatterns = [
    path('', include(router.urls)),
]
