"""
Priority overlay for orders that have not been claimed yet.
"""

import logging
import uuid

from django.db import transaction
from django.db.models import Q

from ..models import Assignment, AssignmentHistory, PriorityMark, AuditLog, DEFAULT_PRIORITY_REASON
from ..exceptions import ValidationException, OrderAlreadyClaimedException, PriorityMarkNotFoundException

logger = logging.getLogger(__name__)


class PriorityService:
    """Service class for priority marks."""

    @staticmethod
    def mark_priority(order_id: str, reason: str = None, notes: str = '', customer_name: str = '',
                      order_number: str = '', user=None) -> PriorityMark:
        """
        Mark an unclaimed order as high priority, or update an existing mark.

        Updating keeps the original ``created_at``, so the order keeps its
        place in the priority queue.

        The claim check runs after the write, inside the same transaction, so
        a claim that lands in between rolls the mark back.

        Raises:
            ValidationException: If order_id is blank
            OrderAlreadyClaimedException: If the order is assigned or claim-locked
        """
        order_id = str(order_id or '').strip()
        if not order_id:
            raise ValidationException("Order id is required", {'order_id': 'required'})

        with transaction.atomic():
            mark, created = PriorityMark.objects.update_or_create(
                order_id=order_id,
                defaults={
                    'reason': (reason or '').strip() or DEFAULT_PRIORITY_REASON,
                    'notes': notes or '',
                    'customer_name': customer_name or '',
                    'order_number': order_number or order_id,
                    'created_by': user,
                }
            )
            if Assignment.objects.filter(order_id=order_id).exists():
                raise OrderAlreadyClaimedException(order_id)
            if AssignmentHistory.objects.filter(order_id=order_id, claim_locked=True).exists():
                raise OrderAlreadyClaimedException(order_id, archived=True)

            AuditLog.log_change(
                entity=mark,
                action='priority_marked' if created else 'priority_updated',
                user=user,
                new_values={'reason': mark.reason, 'notes': mark.notes},
            )

        logger.info(f"Order {mark.order_number} {'marked' if created else 'updated'} as high priority: {mark.reason}")
        return mark

    @staticmethod
    def unmark_priority(identifier: str, user=None) -> PriorityMark:
        """
        Remove a priority mark by mark id or by order id.

        Raises:
            PriorityMarkNotFoundException: If no mark matches
        """
        identifier = str(identifier or '').strip()
        lookup = Q(order_id=identifier)
        try:
            lookup |= Q(id=uuid.UUID(identifier))
        except ValueError:
            pass

        with transaction.atomic():
            mark = PriorityMark.objects.select_for_update().filter(lookup).first()
            if mark is None:
                raise PriorityMarkNotFoundException(identifier)

            AuditLog.log_change(
                entity=mark,
                action='priority_unmarked',
                user=user,
                old_values={'reason': mark.reason},
            )
            mark_id = mark.id
            mark.delete()
            mark.id = mark_id

        logger.info(f"Priority mark removed from order {mark.order_number}")
        return mark

    @staticmethod
    def list_marks():
        """Priority marks in claim order, earliest first."""
        return PriorityMark.objects.order_by('created_at', 'order_id')
