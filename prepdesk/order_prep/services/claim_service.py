"""
Claim Service for the Order Preparation engine.

Hands the next eligible open order to a worker. Two workers racing for the
same order are separated by the unique constraint on ``Assignment.order_id``;
the loser moves on to the next candidate instead of failing.
"""

import logging
from typing import List, Optional

from django.db import transaction, IntegrityError
from django.utils import timezone

from ..conf import prep_settings
from ..models import Assignment, AssignmentHistory, AssignmentState, PriorityMark, AuditLog
from ..exceptions import WorkerAlreadyHasActiveOrderException, OrderSourceException
from ..adapters.order_source import get_order_source
from ..snapshots import OrderRecord
from .location_service import LocationService

logger = logging.getLogger(__name__)


def worker_display_name(worker) -> str:
    return (worker.get_full_name() or worker.get_username()).strip()


class ClaimService:
    """Service class for claiming orders."""

    @staticmethod
    def active_assignment_for(worker) -> Optional[Assignment]:
        """Return the worker's non-terminal assignment, if any."""
        return Assignment.objects.filter(worker=worker).first()

    @staticmethod
    def candidate_queue() -> List[OrderRecord]:
        """
        Build the ordered list of claimable orders.

        Open orders on the platform, minus those already assigned or
        claim-locked in history. Priority-marked orders come first, earliest
        mark first; the rest follow oldest order first.

        Raises:
            OrderSourceException: If the platform cannot list open orders
        """
        source = get_order_source()
        records = [
            record for record in source.list_open_orders(prep_settings.OPEN_STATUS_FILTERS)
            if record is not None
        ]
        if not records:
            return []

        order_ids = [record.order_id for record in records]
        taken = set(
            Assignment.objects.filter(order_id__in=order_ids).values_list('order_id', flat=True)
        )
        taken.update(
            AssignmentHistory.objects.filter(order_id__in=order_ids, claim_locked=True)
            .values_list('order_id', flat=True)
        )
        marks = {
            mark.order_id: mark
            for mark in PriorityMark.objects.filter(order_id__in=order_ids)
        }

        available = [record for record in records if record.order_id not in taken]
        priority = sorted(
            (record for record in available if record.order_id in marks),
            key=lambda record: (marks[record.order_id].created_at, record.order_id)
        )
        normal = sorted(
            (record for record in available if record.order_id not in marks),
            key=lambda record: record.sort_key
        )

        logger.debug(
            f"Candidate queue: {len(priority)} priority, {len(normal)} normal, "
            f"{len(records) - len(available)} already taken"
        )
        return priority + normal

    @staticmethod
    def claim_next(worker) -> Optional[Assignment]:
        """
        Assign the next eligible order to a worker.

        Args:
            worker: User requesting work

        Returns:
            The new Assignment, or None when no order is available

        Raises:
            WorkerAlreadyHasActiveOrderException: If the worker still holds an order
            OrderSourceException: If the platform cannot list open orders
        """
        active = ClaimService.active_assignment_for(worker)
        if active is not None:
            raise WorkerAlreadyHasActiveOrderException(worker.pk, active.id)

        source = get_order_source()
        max_attempts = prep_settings.MAX_CLAIM_ATTEMPTS
        attempts = 0

        for record in ClaimService.candidate_queue():
            if attempts >= max_attempts:
                logger.warning(f"Worker {worker.pk} gave up after {attempts} claim attempts")
                break
            attempts += 1

            try:
                detail = source.get_order(record.order_id)
            except OrderSourceException as e:
                logger.warning(f"Skipping order {record.order_id}: could not fetch detail ({e.message})")
                continue

            assignment = ClaimService._try_claim(worker, record, detail)
            if assignment is None:
                continue

            if prep_settings.AUTO_START_ON_CLAIM:
                from .prep_service import PrepService
                PrepService.start_if_unstarted(str(assignment.id), worker)
                assignment.refresh_from_db()

            return assignment

        logger.info(f"No orders available for worker {worker.pk}")
        return None

    @staticmethod
    def _try_claim(worker, record: OrderRecord, detail: OrderRecord) -> Optional[Assignment]:
        """
        Insert the assignment row for one candidate.

        Returns None if another worker got there first or the order is
        claim-locked in history.

        Raises:
            WorkerAlreadyHasActiveOrderException: If a concurrent claim by the
                same worker won the race
        """
        try:
            with transaction.atomic():
                if AssignmentHistory.objects.filter(order_id=record.order_id, claim_locked=True).exists():
                    logger.warning(f"Order {record.order_id} was archived while claiming, skipping")
                    return None

                mark = PriorityMark.objects.select_for_update().filter(order_id=record.order_id).first()
                snapshot = LocationService.attach_locations(detail.payload)
                now = timezone.now()

                assignment = Assignment.objects.create(
                    order_id=record.order_id,
                    order_number=detail.order_number or record.order_number,
                    worker=worker,
                    worker_name=worker_display_name(worker),
                    state=AssignmentState.ASSIGNED,
                    assigned_at=now,
                    last_status_update_at=now,
                    remote_status=detail.status or record.status or '',
                    order_snapshot=snapshot,
                    snapshot_refreshed_at=now,
                    is_high_priority=mark is not None,
                    priority_reason=mark.reason if mark else '',
                )

                # Priority is spent once claimed, including marks written since the lock
                PriorityMark.objects.filter(order_id=record.order_id).delete()

                AuditLog.log_change(
                    entity=assignment,
                    action='claimed',
                    user=worker,
                    new_values={
                        'order_id': assignment.order_id,
                        'worker_id': worker.pk,
                        'is_high_priority': assignment.is_high_priority,
                    },
                )
        except IntegrityError:
            active = ClaimService.active_assignment_for(worker)
            if active is not None:
                raise WorkerAlreadyHasActiveOrderException(worker.pk, active.id)
            logger.warning(f"Order {record.order_id} claimed concurrently by another worker, trying next")
            return None

        logger.info(
            f"Order {assignment.order_number} assigned to {assignment.worker_name}"
            f"{' (priority)' if assignment.is_high_priority else ''}"
        )
        return assignment
