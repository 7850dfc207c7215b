"""
Prep Service for the Order Preparation engine.

Drives an assignment through assigned -> preparing <-> waiting -> completed,
or to cancelled, and archives it when it closes.

Remote status sync is best-effort: the local transition commits first, the
platform call happens afterwards, and a failure is only recorded on the row
(``remote_status_synced = False``) for ``retry_remote_sync`` to pick up.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from ..conf import prep_settings
from ..models import (
    Assignment, AssignmentHistory, AssignmentState, AuditLog
)
from ..exceptions import (
    AssignmentNotFoundException, AssignmentAlreadyClosedException,
    AssignmentNotOwnedException, OrderSourceException
)
from ..adapters.order_source import get_order_source
from ..snapshots import with_status
from .location_service import LocationService
from .workflow import validate_assignment_workflow

logger = logging.getLogger(__name__)


def parse_assignment_id(assignment_id) -> uuid.UUID:
    """
    Raises:
        AssignmentNotFoundException: If the id is not a UUID
    """
    if isinstance(assignment_id, uuid.UUID):
        return assignment_id
    try:
        return uuid.UUID(str(assignment_id).strip())
    except (TypeError, ValueError):
        raise AssignmentNotFoundException(assignment_id)


def get_active_assignment(assignment_id, lock: bool = False) -> Assignment:
    """
    Load an active assignment.

    Raises:
        AssignmentAlreadyClosedException: If the id belongs to an archived assignment
        AssignmentNotFoundException: If no such assignment exists
    """
    pk = parse_assignment_id(assignment_id)
    queryset = Assignment.objects.select_for_update() if lock else Assignment.objects.all()
    try:
        return queryset.get(id=pk)
    except Assignment.DoesNotExist:
        history = AssignmentHistory.objects.filter(id=pk).only('final_state').first()
        if history is not None:
            raise AssignmentAlreadyClosedException(pk, history.final_state)
        raise AssignmentNotFoundException(assignment_id)


class PrepService:
    """Service class for the preparation state machine."""

    @staticmethod
    def transition(assignment_id: str, worker, target_state: str, skip_remote_sync: bool = False,
                   notes: Optional[str] = None, remote_status_tag: Optional[str] = None,
                   force: bool = False) -> Dict[str, Any]:
        """
        Move an assignment to ``target_state``.

        Args:
            assignment_id: Assignment UUID
            worker: User performing the transition; must own the assignment
                unless ``force`` is set
            target_state: preparing, waiting, completed or cancelled
            skip_remote_sync: Do not call the platform (it was already updated)
            notes: Replaces the assignment notes when given
            remote_status_tag: Overrides the platform status pushed for this step
            force: Administrative override of the ownership check

        Returns:
            Result with the (possibly archived) assignment and the remote sync outcome

        Raises:
            AssignmentNotFoundException: Unknown assignment
            AssignmentAlreadyClosedException: Assignment is completed or cancelled
            AssignmentNotOwnedException: Worker does not own the assignment
            InvalidTransitionException: Transition not allowed
        """
        with transaction.atomic():
            assignment = get_active_assignment(assignment_id, lock=True)

            if not force and assignment.worker_id != getattr(worker, 'pk', None):
                raise AssignmentNotOwnedException(assignment.id, getattr(worker, 'pk', None))

            if not validate_assignment_workflow(assignment, target_state):
                return {
                    'assignment': assignment,
                    'state': assignment.state,
                    'changed': False,
                    'remote_status_synced': assignment.remote_status_synced,
                    'remote_error': None,
                    'duration_seconds': None,
                }

            now = timezone.now()
            old_state = assignment.state
            if notes is not None:
                assignment.notes = notes

            remote_tag = remote_status_tag or prep_settings.remote_status_for(
                'released' if target_state == AssignmentState.CANCELLED else target_state
            )
            if remote_tag and skip_remote_sync:
                assignment.remote_status = str(remote_tag)
                assignment.remote_status_synced = True
                assignment.remote_sync_error = ''

            duration = None
            if target_state == AssignmentState.PREPARING:
                if assignment.started_at is None:
                    assignment.started_at = now
            elif target_state == AssignmentState.WAITING:
                if assignment.waiting_at is None:
                    assignment.waiting_at = now

            if target_state in (AssignmentState.COMPLETED, AssignmentState.CANCELLED):
                record = PrepService._archive(assignment, target_state, now)
                duration = record.duration_seconds
            else:
                assignment.state = target_state
                assignment.last_status_update_at = now
                assignment.save()
                record = assignment

            AuditLog.log_state_change(
                entity=record,
                old_state=old_state,
                new_state=target_state,
                user=worker,
                notes=notes or ('administrative override' if force else ''),
            )

        logger.info(f"Assignment {record.id} for order {record.order_number} moved {old_state} -> {target_state}")

        synced, remote_error = record.remote_status_synced, None
        if remote_tag and not skip_remote_sync:
            synced, remote_error = PrepService._push_remote_status(record, str(remote_tag))

        return {
            'assignment': record,
            'state': target_state,
            'changed': True,
            'remote_status_synced': synced,
            'remote_error': remote_error,
            'duration_seconds': duration,
        }

    @staticmethod
    def _archive(assignment: Assignment, final_state: str, now) -> AssignmentHistory:
        """Copy a closing assignment to history and delete the active row."""
        completed_at = now if final_state == AssignmentState.COMPLETED else None
        cancelled_at = now if final_state == AssignmentState.CANCELLED else None
        duration = None
        if completed_at is not None:
            reference = assignment.started_at or assignment.assigned_at
            duration = max(0, int((completed_at - reference).total_seconds()))

        history = AssignmentHistory.objects.create(
            id=assignment.id,
            order_id=assignment.order_id,
            order_number=assignment.order_number,
            worker_id=assignment.worker_id,
            worker_name=assignment.worker_name,
            final_state=final_state,
            assigned_at=assignment.assigned_at,
            started_at=assignment.started_at,
            waiting_at=assignment.waiting_at,
            completed_at=completed_at,
            cancelled_at=cancelled_at,
            duration_seconds=duration,
            remote_status=assignment.remote_status,
            remote_status_synced=assignment.remote_status_synced,
            remote_sync_error=assignment.remote_sync_error,
            order_snapshot=assignment.order_snapshot,
            is_high_priority=assignment.is_high_priority,
            priority_reason=assignment.priority_reason,
            notes=assignment.notes,
            claim_locked=True,
            archived_at=now,
        )
        assignment.delete()
        return history

    @staticmethod
    def _push_remote_status(record, status_tag: str):
        """
        Push a status to the platform and record the outcome on ``record``.

        Returns:
            (synced, error message or None)
        """
        model = type(record)
        try:
            get_order_source().set_remote_status(record.order_id, status_tag)
        except OrderSourceException as e:
            logger.warning(f"Failed to sync status {status_tag} for order {record.order_id}: {e.message}")
            model.objects.filter(id=record.id).update(
                remote_status=status_tag,
                remote_status_synced=False,
                remote_sync_error=e.message,
            )
            record.remote_status, record.remote_status_synced, record.remote_sync_error = status_tag, False, e.message
            return False, e.message

        updates = {'remote_status': status_tag, 'remote_status_synced': True, 'remote_sync_error': ''}
        if model is Assignment:
            updates['order_snapshot'] = with_status(record.order_snapshot, status_tag)
        model.objects.filter(id=record.id).update(**updates)
        for field, value in updates.items():
            setattr(record, field, value)
        return True, None

    @staticmethod
    def start_if_unstarted(assignment_id: str, worker) -> Dict[str, Any]:
        """
        Move a freshly claimed assignment to preparing, once.

        Safe to call on every page load: only acts while ``started_at`` is
        still empty and the assignment is in ``assigned``.
        """
        assignment = get_active_assignment(assignment_id)
        if assignment.worker_id != getattr(worker, 'pk', None):
            raise AssignmentNotOwnedException(assignment.id, getattr(worker, 'pk', None))

        if assignment.started_at is not None or assignment.state != AssignmentState.ASSIGNED:
            return {
                'assignment': assignment,
                'state': assignment.state,
                'changed': False,
                'remote_status_synced': assignment.remote_status_synced,
                'remote_error': None,
                'duration_seconds': None,
            }
        return PrepService.transition(assignment_id, worker, AssignmentState.PREPARING)

    @staticmethod
    def release(assignment_id: str, worker, remote_status_tag: Optional[str] = None,
                reason: str = '', force: bool = False) -> Dict[str, Any]:
        """
        Hand an order back: cancel the assignment and move the platform order
        to ``remote_status_tag`` (default: the configured ``released`` status).
        """
        notes = f"Released: {reason}" if reason else None
        return PrepService.transition(
            assignment_id, worker, AssignmentState.CANCELLED,
            notes=notes, remote_status_tag=remote_status_tag, force=force
        )

    @staticmethod
    def refresh_snapshot(assignment_id: str, worker=None, force: bool = False) -> Assignment:
        """
        Replace the assignment's order snapshot with a fresh copy from the platform.

        Raises:
            AssignmentNotFoundException, AssignmentAlreadyClosedException,
            AssignmentNotOwnedException, OrderSourceException
        """
        assignment = get_active_assignment(assignment_id)
        if not force and assignment.worker_id != getattr(worker, 'pk', None):
            raise AssignmentNotOwnedException(assignment.id, getattr(worker, 'pk', None))

        detail = get_order_source().get_order(assignment.order_id)
        snapshot = LocationService.attach_locations(detail.payload)
        now = timezone.now()

        updated = Assignment.objects.filter(id=assignment.id).update(
            order_snapshot=snapshot,
            snapshot_refreshed_at=now,
            order_number=detail.order_number or assignment.order_number,
        )
        if not updated:
            # Closed while we were talking to the platform
            get_active_assignment(assignment.id)

        assignment.refresh_from_db()
        logger.info(f"Refreshed snapshot for order {assignment.order_number} ({len(assignment.line_items)} lines)")
        return assignment

    @staticmethod
    def retry_remote_sync() -> Dict[str, int]:
        """
        Retry platform status pushes that failed earlier.

        Returns:
            Counts of retried, synced and still failing records
        """
        retried = synced = 0
        for model in (Assignment, AssignmentHistory):
            for record in model.objects.filter(remote_status_synced=False).exclude(remote_status=''):
                retried += 1
                ok, _ = PrepService._push_remote_status(record, record.remote_status)
                if ok:
                    synced += 1

        if retried:
            logger.info(f"Remote status retry: {synced}/{retried} synced")
        return {'retried': retried, 'synced': synced, 'failed': retried - synced}
