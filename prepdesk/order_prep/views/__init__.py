"""
Order Preparation Views
"""

from .assignment_views import AssignmentViewSet, AssignmentHistoryViewSet
from .admin_views import PrepAdminViewSet
from .priority_views import PriorityMarkViewSet
from .stock_views import StockViewSet, ProductLocationViewSet

__all__ = [
    'AssignmentViewSet', 'AssignmentHistoryViewSet', 'PrepAdminViewSet',
    'PriorityMarkViewSet', 'StockViewSet', 'ProductLocationViewSet',
]
