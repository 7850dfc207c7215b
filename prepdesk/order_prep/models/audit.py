"""
Audit log model for the Order Preparation engine.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class AuditLog(models.Model):
    """
    Audit trail for claims, transitions and administrative interventions.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    entity_type = models.CharField(
        max_length=50,
        help_text="Type of entity (Assignment, AssignmentHistory, PriorityMark, ...)"
    )
    entity_id = models.UUIDField(
        help_text="UUID of the entity being audited"
    )
    order_id = models.CharField(
        max_length=64,
        blank=True,
        db_index=True,
        help_text="Commerce platform order the entry concerns, if any"
    )

    action = models.CharField(
        max_length=50,
        help_text="Action performed (claimed, state_changed, reassigned, ...)"
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='prep_audit_logs',
        help_text="User who performed the action"
    )

    old_values = models.JSONField(default=dict, blank=True)
    new_values = models.JSONField(default=dict, blank=True)

    timestamp = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id', '-timestamp'], name='order_prep__entity__4c6e12_idx'),
            models.Index(fields=['action', '-timestamp'], name='order_prep__action_9e0b7d_idx'),
        ]

    def __str__(self):
        return f"{self.entity_type} {self.entity_id} - {self.action} by {self.user} at {self.timestamp}"

    @classmethod
    def log_change(cls, entity, action: str, user=None, old_values=None,
                   new_values=None, notes=""):
        """
        Create an audit log entry for an entity change.

        Args:
            entity: The model instance being audited
            action: The action performed
            user: User who performed the action
            old_values: Previous state
            new_values: New state
            notes: Additional notes
        """
        def to_json(obj):
            if isinstance(obj, dict):
                return {k: to_json(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [to_json(item) for item in obj]
            elif isinstance(obj, (str, int, float, bool)) or obj is None:
                return obj
            return str(obj)

        return cls.objects.create(
            entity_type=entity.__class__.__name__,
            entity_id=entity.id,
            order_id=getattr(entity, 'order_id', '') or '',
            action=action,
            user=user,
            old_values=to_json(old_values or {}),
            new_values=to_json(new_values or {}),
            notes=notes,
        )

    @classmethod
    def log_state_change(cls, entity, old_state: str, new_state: str, user=None, notes=""):
        """Log a lifecycle state change for an assignment."""
        return cls.log_change(
            entity=entity,
            action='state_changed',
            user=user,
            old_values={'state': old_state},
            new_values={'state': new_state},
            notes=notes
        )
