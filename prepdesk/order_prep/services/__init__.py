"""
Order Preparation Services
"""

from .workflow import AssignmentWorkflow, validate_assignment_workflow
from .location_service import LocationService
from .claim_service import ClaimService
from .prep_service import PrepService
from .admin_service import AdminService
from .priority_service import PriorityService
from .reconciliation_service import (
    ReconciliationService, ReconciliationResult, calculate_reconciliation
)
from .stats_service import StatsService

__all__ = [
    # Workflow validators
    'AssignmentWorkflow', 'validate_assignment_workflow',

    # Services
    'ClaimService', 'PrepService', 'AdminService', 'PriorityService',
    'LocationService', 'ReconciliationService', 'StatsService',

    # Reconciliation
    'ReconciliationResult', 'calculate_reconciliation',
]
