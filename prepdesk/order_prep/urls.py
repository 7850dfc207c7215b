"""
URL configuration for Order Preparation.

Provides API endpoints for claiming, preparing and administering orders,
the priority overlay, stock reconciliation and product locations.
"""

from rest_framework.routers import DefaultRouter

from .views import (
    AssignmentViewSet, AssignmentHistoryViewSet, PrepAdminViewSet,
    PriorityMarkViewSet, StockViewSet, ProductLocationViewSet
)

# Create router and register viewsets
router = DefaultRouter()
router.register(r'assignments', AssignmentViewSet, basename='assignment')
router.register(r'history', AssignmentHistoryViewSet, basename='assignment-history')
router.register(r'admin', PrepAdminViewSet, basename='prep-admin')
router.register(r'priority-marks', PriorityMarkViewSet, basename='priority-mark')
router.register(r'stock', StockViewSet, basename='stock')
router.register(r'locations', ProductLocationViewSet, basename='location')

# URL patterns
urlpatterns = router.urls
