"""
Order Preparation Models
"""

from .assignment import (
    Assignment, AssignmentHistory, AssignmentState,
    ACTIVE_STATES, TERMINAL_STATES, PROTECTED_STATES
)
from .priority import PriorityMark, DEFAULT_PRIORITY_REASON
from .location import ProductLocation
from .audit import AuditLog

__all__ = [
    # Assignment models
    'Assignment', 'AssignmentHistory', 'AssignmentState',
    'ACTIVE_STATES', 'TERMINAL_STATES', 'PROTECTED_STATES',

    # Priority overlay
    'PriorityMark', 'DEFAULT_PRIORITY_REASON',

    # Product location index
    'ProductLocation',

    # Audit
    'AuditLog',
]
