"""
API v1 URL Configuration.

All API endpoints for version 1.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views.bom import BOMAnalysisViewSet
from .views.lifecycle import LifecycleViewSet

# Create router
router = DefaultRouter()

# BOM analysis
router.register(r'bom', BOMAnalysisViewSet, basename='bom')

# Lifecycle
router.register(r'lifecycle', LifecycleViewSet, basename='lifecycle')

app_name = 'api_v1'

urlpatterns = [
    path('', include(router.urls)),
]
