"""
Custom exceptions for the Order Preparation engine.
"""

from typing import Dict, Any


class BusinessException(Exception):
    """Base exception for business logic errors."""

    http_status = 400

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(BusinessException):
    """Raised when data validation fails."""

    def __init__(self, message: str, field_errors: Dict[str, Any] = None):
        super().__init__(message, "VALIDATION_ERROR", field_errors or {})


class InvalidTransitionException(BusinessException):
    """Raised when attempting a transition the prep workflow does not allow."""

    def __init__(self, current_state: str, attempted_state: str, entity_type: str = "assignment"):
        message = f"Invalid transition for {entity_type}: cannot move from {current_state} to {attempted_state}"
        super().__init__(message, "INVALID_TRANSITION", {
            "current_state": current_state,
            "attempted_state": attempted_state,
            "entity_type": entity_type
        })


class WorkerAlreadyHasActiveOrderException(BusinessException):
    """Raised when a worker asks for a new order while still holding one."""

    http_status = 409

    def __init__(self, worker_id, assignment_id=None):
        super().__init__(
            f"Worker {worker_id} already has an active order",
            "WORKER_HAS_ACTIVE_ORDER",
            {"worker_id": worker_id, "assignment_id": str(assignment_id) if assignment_id else None}
        )


class TargetWorkerBusyException(BusinessException):
    """Raised when a reassignment would give a worker a second active order."""

    http_status = 409

    def __init__(self, worker_id, assignment_id=None):
        super().__init__(
            f"Worker {worker_id} already holds an active order",
            "TARGET_WORKER_BUSY",
            {"worker_id": worker_id, "assignment_id": str(assignment_id) if assignment_id else None}
        )


class InvalidCountException(BusinessException):
    """Raised when a physical stock count is negative or not a number."""

    def __init__(self, value):
        super().__init__(
            f"Invalid stock count: {value!r}",
            "INVALID_COUNT",
            {"value": str(value)}
        )


class AssignmentNotFoundException(BusinessException):
    http_status = 404

    def __init__(self, identifier):
        super().__init__(
            f"Assignment {identifier} not found",
            "ASSIGNMENT_NOT_FOUND",
            {"id": str(identifier)}
        )


class AssignmentAlreadyClosedException(BusinessException):
    """Raised when acting on an assignment that is already completed or cancelled."""

    http_status = 409

    def __init__(self, identifier, final_state: str):
        super().__init__(
            f"Assignment {identifier} is already {final_state}",
            "ASSIGNMENT_ALREADY_CLOSED",
            {"id": str(identifier), "final_state": final_state}
        )


class AssignmentNotArchivedException(BusinessException):
    http_status = 409

    def __init__(self, identifier, state: str):
        super().__init__(
            f"Assignment {identifier} is still {state} and cannot be reopened",
            "ASSIGNMENT_NOT_ARCHIVED",
            {"id": str(identifier), "state": state}
        )


class AssignmentProtectedException(BusinessException):
    """Raised when removal targets settled history."""

    http_status = 409

    def __init__(self, identifier, state: str):
        super().__init__(
            f"Assignment {identifier} is {state} and cannot be removed",
            "ASSIGNMENT_PROTECTED",
            {"id": str(identifier), "state": state}
        )


class AssignmentNotOwnedException(BusinessException):
    http_status = 403

    def __init__(self, identifier, worker_id):
        super().__init__(
            f"Assignment {identifier} does not belong to worker {worker_id}",
            "ASSIGNMENT_NOT_OWNED",
            {"id": str(identifier), "worker_id": worker_id}
        )


class OrderAlreadyClaimedException(BusinessException):
    http_status = 409

    def __init__(self, order_id: str, archived: bool = False):
        super().__init__(
            f"Order {order_id} is already prepared and locked against claims" if archived
            else f"Order {order_id} is already assigned to a worker",
            "ORDER_ALREADY_CLAIMED",
            {"order_id": order_id, "archived": archived}
        )


class PriorityMarkNotFoundException(BusinessException):
    http_status = 404

    def __init__(self, identifier):
        super().__init__(
            f"Order {identifier} is not in the priority list",
            "PRIORITY_MARK_NOT_FOUND",
            {"id": str(identifier)}
        )


class OrderSourceException(BusinessException):
    """Raised by order source adapters when the commerce platform fails."""

    http_status = 502

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "ORDER_SOURCE_ERROR", details)
