"""
Workflow rules for the preparation state machine.

States only move forward; nothing re-enters ``assigned`` and nothing leaves
``completed`` or ``cancelled``.
"""

from ..exceptions import InvalidTransitionException, AssignmentAlreadyClosedException
from ..models import AssignmentState, TERMINAL_STATES


class AssignmentWorkflow:
    """Workflow rules for Assignment state transitions."""

    ALLOWED_TRANSITIONS = {
        AssignmentState.ASSIGNED: [AssignmentState.PREPARING, AssignmentState.CANCELLED],
        AssignmentState.PREPARING: [AssignmentState.WAITING, AssignmentState.COMPLETED, AssignmentState.CANCELLED],
        AssignmentState.WAITING: [AssignmentState.PREPARING, AssignmentState.COMPLETED, AssignmentState.CANCELLED],
        AssignmentState.COMPLETED: [],  # Final state
        AssignmentState.CANCELLED: [],  # Final state
    }

    @classmethod
    def validate_transition(cls, assignment, new_state: str) -> bool:
        """
        Validate if a state transition is allowed.

        Args:
            assignment: Assignment or AssignmentHistory instance
            new_state: State to transition to

        Returns:
            False for a no-op (already in ``new_state``), True otherwise

        Raises:
            AssignmentAlreadyClosedException: If the assignment is terminal
            InvalidTransitionException: If transition is not allowed
        """
        current_state = assignment.state

        if current_state in TERMINAL_STATES:
            raise AssignmentAlreadyClosedException(assignment.id, current_state)

        if new_state not in AssignmentState.values:
            raise InvalidTransitionException(
                current_state=current_state,
                attempted_state=new_state,
                entity_type="Assignment"
            )

        if current_state == new_state:
            return False

        if new_state not in cls.ALLOWED_TRANSITIONS.get(current_state, []):
            raise InvalidTransitionException(
                current_state=current_state,
                attempted_state=new_state,
                entity_type="Assignment"
            )
        return True

    @classmethod
    def can_transition_to(cls, assignment, new_state: str) -> bool:
        """Check if transition is allowed without raising exception."""
        try:
            return cls.validate_transition(assignment, new_state)
        except (InvalidTransitionException, AssignmentAlreadyClosedException):
            return False


def validate_assignment_workflow(assignment, new_state: str) -> bool:
    """
    Validate assignment workflow transition.

    Raises:
        AssignmentAlreadyClosedException: If the assignment is terminal
        InvalidTransitionException: If transition is not allowed
    """
    return AssignmentWorkflow.validate_transition(assignment, new_state)
