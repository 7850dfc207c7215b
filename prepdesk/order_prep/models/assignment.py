"""
Assignment models for the Order Preparation engine.

An ``Assignment`` row exists only while an order is being prepared. On
completion or cancellation it is copied to ``AssignmentHistory`` and deleted,
so the active table only ever holds non-terminal states.
"""

import uuid
from django.db import models
from django.db.models import Q
from django.conf import settings
from django.utils import timezone


class AssignmentState(models.TextChoices):
    """Preparation lifecycle states."""
    ASSIGNED = 'assigned', 'Assigned'
    PREPARING = 'preparing', 'Preparing'
    WAITING = 'waiting', 'Waiting'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


ACTIVE_STATES = (AssignmentState.ASSIGNED, AssignmentState.PREPARING, AssignmentState.WAITING)
TERMINAL_STATES = (AssignmentState.COMPLETED, AssignmentState.CANCELLED)

# Remove never touches these
PROTECTED_STATES = frozenset(TERMINAL_STATES)


class Assignment(models.Model):
    """
    Binds one open order to one worker for the duration of preparation.

    At most one row per order, and at most one row per worker, both enforced
    by the database so concurrent claims cannot double-book.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Order reference
    order_id = models.CharField(
        max_length=64,
        help_text="Order identifier on the commerce platform"
    )
    order_number = models.CharField(
        max_length=64,
        blank=True,
        help_text="Human readable order number"
    )

    # Worker
    worker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='prep_assignments',
        help_text="Worker preparing the order"
    )
    worker_name = models.CharField(max_length=150, blank=True)

    state = models.CharField(
        max_length=20,
        choices=AssignmentState.choices,
        default=AssignmentState.ASSIGNED,
    )

    # Lifecycle timestamps
    assigned_at = models.DateTimeField(default=timezone.now)
    started_at = models.DateTimeField(null=True, blank=True)
    waiting_at = models.DateTimeField(null=True, blank=True)
    last_status_update_at = models.DateTimeField(default=timezone.now)

    # Remote status sync
    remote_status = models.CharField(
        max_length=64,
        blank=True,
        help_text="Last status tag pushed to (or read from) the commerce platform"
    )
    remote_status_synced = models.BooleanField(default=True)
    remote_sync_error = models.TextField(blank=True)

    # Denormalised order contents
    order_snapshot = models.JSONField(default=dict, blank=True)
    snapshot_refreshed_at = models.DateTimeField(null=True, blank=True)

    # Priority
    is_high_priority = models.BooleanField(default=False)
    priority_reason = models.CharField(max_length=255, blank=True)

    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['assigned_at']
        constraints = [
            models.UniqueConstraint(fields=['order_id'], name='unique_active_assignment_per_order'),
            models.UniqueConstraint(
                fields=['worker'],
                condition=Q(state__in=['assigned', 'preparing', 'waiting']),
                name='unique_active_assignment_per_worker',
            ),
        ]
        indexes = [
            models.Index(fields=['state', 'assigned_at'], name='order_prep__state_5a1c2e_idx'),
        ]

    def __str__(self):
        return f"Assignment {self.order_number or self.order_id} - {self.worker_name} ({self.state})"

    @property
    def is_active(self):
        return self.state in ACTIVE_STATES

    @property
    def line_items(self):
        from ..snapshots import extract_line_items
        return extract_line_items(self.order_snapshot)


class AssignmentHistory(models.Model):
    """
    Archived assignment, written once when the assignment closes.

    ``claim_locked`` keeps the order out of the candidate pool until an
    administrator reopens it.
    """

    # Same identity as the assignment it archives
    id = models.UUIDField(primary_key=True, editable=False)

    order_id = models.CharField(max_length=64)
    order_number = models.CharField(max_length=64, blank=True)

    worker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='prep_history',
    )
    worker_name = models.CharField(max_length=150, blank=True)

    final_state = models.CharField(
        max_length=20,
        choices=[
            (AssignmentState.COMPLETED.value, AssignmentState.COMPLETED.label),
            (AssignmentState.CANCELLED.value, AssignmentState.CANCELLED.label),
        ],
    )

    assigned_at = models.DateTimeField()
    started_at = models.DateTimeField(null=True, blank=True)
    waiting_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    duration_seconds = models.PositiveIntegerField(null=True, blank=True)

    remote_status = models.CharField(max_length=64, blank=True)
    remote_status_synced = models.BooleanField(default=True)
    remote_sync_error = models.TextField(blank=True)

    order_snapshot = models.JSONField(default=dict, blank=True)
    is_high_priority = models.BooleanField(default=False)
    priority_reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    claim_locked = models.BooleanField(default=True)
    reopened_at = models.DateTimeField(null=True, blank=True)
    reopened_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reopened_prep_history',
    )

    archived_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-archived_at']
        verbose_name_plural = 'assignment history'
        constraints = [
            models.UniqueConstraint(
                fields=['order_id'],
                condition=Q(claim_locked=True),
                name='unique_claim_lock_per_order',
            ),
        ]
        indexes = [
            models.Index(fields=['worker', 'final_state'], name='order_prep__worker__8d3f41_idx'),
            models.Index(fields=['final_state', '-archived_at'], name='order_prep__final_s_27b9c0_idx'),
        ]

    def __str__(self):
        return f"History {self.order_number or self.order_id} - {self.worker_name} ({self.final_state})"

    @property
    def state(self):
        return self.final_state

    @property
    def duration_minutes(self):
        if self.duration_seconds is None:
            return None
        return self.duration_seconds // 60
