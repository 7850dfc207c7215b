"""
Administrative interventions on assignments: reassign, reopen, remove and
priority overrides.

Bulk operations handle each identifier in its own savepoint. Failures are
collected per item; only when nothing succeeds is the first failure raised.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from django.db import transaction, IntegrityError
from django.utils import timezone

from ..conf import prep_settings
from ..models import Assignment, AssignmentHistory, AuditLog, PROTECTED_STATES, DEFAULT_PRIORITY_REASON
from ..exceptions import (
    BusinessException, ValidationException, TargetWorkerBusyException,
    AssignmentNotFoundException, AssignmentNotArchivedException,
    AssignmentProtectedException
)
from .claim_service import worker_display_name
from .prep_service import PrepService, get_active_assignment, parse_assignment_id

logger = logging.getLogger(__name__)


def _unique(identifiers: Optional[Iterable]) -> List[str]:
    seen = []
    for identifier in identifiers or []:
        value = str(identifier).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def run_bulk(tasks: List[Tuple[str, Callable[[str], Any]]], label: str) -> Dict[str, Any]:
    """
    Apply each ``(identifier, operation)`` task in turn.

    Returns:
        {'succeeded': [...], 'failed': [{'id', 'code', 'message'}, ...]}

    Raises:
        BusinessException: The first failure, when no identifier succeeded
    """
    succeeded, failed = [], []
    first_error = None

    for identifier, operation in tasks:
        try:
            succeeded.append(operation(identifier))
        except BusinessException as e:
            logger.warning(f"{label}: skipped {identifier} ({e.code}: {e.message})")
            failed.append({'id': identifier, 'code': e.code, 'message': e.message})
            if first_error is None:
                first_error = e

    if first_error is not None and not succeeded:
        raise first_error
    return {'succeeded': succeeded, 'failed': failed}


class AdminService:
    """Service class for supervisor and administrator operations."""

    @staticmethod
    def reassign(assignment_ids: Iterable[str], new_worker, performed_by=None) -> Dict[str, Any]:
        """
        Move active assignments to another worker.

        State and timestamps are left untouched. The target worker can end up
        with at most one active assignment: the first requested assignment
        wins, the others fail with TARGET_WORKER_BUSY. The database constraint
        on active assignments per worker decides, not a prior read.

        Raises:
            ValidationException: No ids given, or the target worker is inactive
            BusinessException: First failure when every reassignment failed
        """
        identifiers = _unique(assignment_ids)
        if not identifiers:
            raise ValidationException("No assignments selected", {'assignment_ids': 'required'})
        if new_worker is None or not new_worker.is_active:
            raise ValidationException("Target worker is not active", {
                'worker_id': getattr(new_worker, 'pk', None)
            })

        new_name = worker_display_name(new_worker)

        def reassign_one(identifier):
            try:
                with transaction.atomic():
                    assignment = get_active_assignment(identifier, lock=True)
                    if assignment.worker_id == new_worker.pk:
                        return assignment

                    old_values = {'worker_id': assignment.worker_id, 'worker_name': assignment.worker_name}
                    assignment.worker = new_worker
                    assignment.worker_name = new_name
                    assignment.save(update_fields=['worker', 'worker_name'])

                    AuditLog.log_change(
                        entity=assignment,
                        action='reassigned',
                        user=performed_by,
                        old_values=old_values,
                        new_values={'worker_id': new_worker.pk, 'worker_name': new_name},
                    )
            except IntegrityError:
                busy = Assignment.objects.filter(worker=new_worker).first()
                raise TargetWorkerBusyException(new_worker.pk, busy.id if busy else None)

            logger.info(f"Order {assignment.order_number} reassigned from {old_values['worker_name']} to {new_name}")
            return assignment

        return run_bulk([(identifier, reassign_one) for identifier in identifiers], 'reassign')

    @staticmethod
    def reopen(assignment_ids: Iterable[str], performed_by=None) -> Dict[str, Any]:
        """
        Clear the claim lock of archived assignments so their orders can be
        claimed again. The old assignment is not resurrected.

        The platform order is moved back to the configured ``reopened``
        status, best-effort.

        Raises:
            ValidationException: No ids given
            BusinessException: First failure when every reopen failed
        """
        identifiers = _unique(assignment_ids)
        if not identifiers:
            raise ValidationException("No assignments selected", {'assignment_ids': 'required'})

        def reopen_one(identifier):
            pk = parse_assignment_id(identifier)
            with transaction.atomic():
                history = AssignmentHistory.objects.select_for_update().filter(id=pk).first()
                if history is None:
                    active = Assignment.objects.filter(id=pk).only('state').first()
                    if active is not None:
                        raise AssignmentNotArchivedException(pk, active.state)
                    raise AssignmentNotFoundException(identifier)

                if not history.claim_locked:
                    return history

                history.claim_locked = False
                history.reopened_at = timezone.now()
                history.reopened_by = performed_by
                history.save(update_fields=['claim_locked', 'reopened_at', 'reopened_by'])

                AuditLog.log_change(
                    entity=history,
                    action='reopened',
                    user=performed_by,
                    old_values={'claim_locked': True},
                    new_values={'claim_locked': False},
                )

            logger.info(f"Order {history.order_number} reopened for claiming")
            status_tag = prep_settings.remote_status_for('reopened')
            if status_tag:
                PrepService._push_remote_status(history, str(status_tag))
            return history

        return run_bulk([(identifier, reopen_one) for identifier in identifiers], 'reopen')

    @staticmethod
    def remove(assignment_ids: Iterable[str] = None, order_ids: Iterable[str] = None,
               performed_by=None) -> Dict[str, Any]:
        """
        Delete active assignments without archiving them, returning their
        orders to the unassigned pool.

        Archived (completed or cancelled) assignments are protected and fail
        with ASSIGNMENT_PROTECTED.

        Returns:
            Bulk result; ``succeeded`` holds a summary of each removed row
        """
        by_assignment = _unique(assignment_ids)
        by_order = _unique(order_ids)
        if not by_assignment and not by_order:
            raise ValidationException("No assignments or orders selected", {
                'assignment_ids': 'required', 'order_ids': 'required'
            })

        def delete(assignment: Assignment) -> Dict[str, Any]:
            summary = {
                'id': str(assignment.id),
                'order_id': assignment.order_id,
                'order_number': assignment.order_number,
                'worker_id': assignment.worker_id,
                'state': assignment.state,
            }
            AuditLog.log_change(
                entity=assignment,
                action='removed',
                user=performed_by,
                old_values=summary,
            )
            assignment.delete()
            logger.info(f"Assignment for order {summary['order_number']} removed")
            return summary

        def remove_by_id(identifier):
            pk = parse_assignment_id(identifier)
            with transaction.atomic():
                assignment = Assignment.objects.select_for_update().filter(id=pk).first()
                if assignment is None:
                    history = AssignmentHistory.objects.filter(id=pk).only('final_state').first()
                    if history is not None and history.final_state in PROTECTED_STATES:
                        raise AssignmentProtectedException(pk, history.final_state)
                    raise AssignmentNotFoundException(identifier)
                return delete(assignment)

        def remove_by_order(order_id):
            with transaction.atomic():
                assignment = Assignment.objects.select_for_update().filter(order_id=order_id).first()
                if assignment is None:
                    history = AssignmentHistory.objects.filter(order_id=order_id).order_by('-archived_at').first()
                    if history is not None:
                        raise AssignmentProtectedException(history.id, history.final_state)
                    raise AssignmentNotFoundException(order_id)
                return delete(assignment)

        tasks = [(identifier, remove_by_id) for identifier in by_assignment]
        tasks += [(order_id, remove_by_order) for order_id in by_order]
        return run_bulk(tasks, 'remove')

    @staticmethod
    def set_assignment_priority(assignment_id: str, is_high_priority: bool, reason: str = '',
                                performed_by=None) -> Assignment:
        """Flag or unflag an active assignment as high priority."""
        with transaction.atomic():
            assignment = get_active_assignment(assignment_id, lock=True)
            old_values = {
                'is_high_priority': assignment.is_high_priority,
                'priority_reason': assignment.priority_reason,
            }
            assignment.is_high_priority = bool(is_high_priority)
            if assignment.is_high_priority:
                assignment.priority_reason = (reason or '').strip() or DEFAULT_PRIORITY_REASON
            else:
                assignment.priority_reason = ''
            assignment.save(update_fields=['is_high_priority', 'priority_reason'])

            AuditLog.log_change(
                entity=assignment,
                action='priority_changed',
                user=performed_by,
                old_values=old_values,
                new_values={
                    'is_high_priority': assignment.is_high_priority,
                    'priority_reason': assignment.priority_reason,
                },
            )

        logger.info(
            f"Order {assignment.order_number} priority "
            f"{'set' if assignment.is_high_priority else 'cleared'} by {performed_by}"
        )
        return assignment
