"""
Priority overlay for unclaimed orders.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone

DEFAULT_PRIORITY_REASON = "Flagged from the preparation dashboard"


class PriorityMark(models.Model):
    """
    Marks a not-yet-claimed order as high priority.

    Marked orders are claimed before any unmarked order, earliest mark first.
    The mark is deleted when the order is claimed.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_id = models.CharField(max_length=64, unique=True)
    order_number = models.CharField(max_length=64, blank=True)
    customer_name = models.CharField(max_length=255, blank=True)

    reason = models.CharField(max_length=255, default=DEFAULT_PRIORITY_REASON)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='priority_marks',
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"Priority {self.order_number or self.order_id}: {self.reason}"
