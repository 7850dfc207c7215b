"""
Assignment serializers for the Order Preparation module.
"""

from dataclasses import asdict

from django.contrib.auth import get_user_model
from rest_framework import serializers

from ..models import Assignment, AssignmentHistory, AssignmentState


class AssignmentListSerializer(serializers.ModelSerializer):
    """Serializer for assignment listing."""

    line_count = serializers.SerializerMethodField()

    class Meta:
        model = Assignment
        fields = [
            'id', 'order_id', 'order_number', 'worker', 'worker_name', 'state',
            'is_high_priority', 'priority_reason', 'remote_status',
            'remote_status_synced', 'line_count', 'assigned_at', 'started_at',
            'waiting_at', 'last_status_update_at'
        ]

    def get_line_count(self, obj):
        return len(obj.line_items)


class AssignmentDetailSerializer(serializers.ModelSerializer):
    """Serializer for the worker's view of an assignment, snapshot included."""

    line_items = serializers.SerializerMethodField()

    class Meta:
        model = Assignment
        fields = [
            'id', 'order_id', 'order_number', 'worker', 'worker_name', 'state',
            'is_high_priority', 'priority_reason', 'notes', 'remote_status',
            'remote_status_synced', 'remote_sync_error', 'assigned_at',
            'started_at', 'waiting_at', 'last_status_update_at',
            'snapshot_refreshed_at', 'line_items', 'order_snapshot'
        ]
        read_only_fields = fields

    def get_line_items(self, obj):
        return [asdict(item) for item in obj.line_items]


class AssignmentHistorySerializer(serializers.ModelSerializer):
    """Serializer for archived assignments."""

    duration_minutes = serializers.SerializerMethodField()

    class Meta:
        model = AssignmentHistory
        fields = [
            'id', 'order_id', 'order_number', 'worker', 'worker_name',
            'final_state', 'assigned_at', 'started_at', 'waiting_at',
            'completed_at', 'cancelled_at', 'duration_seconds',
            'duration_minutes', 'remote_status', 'remote_status_synced',
            'remote_sync_error', 'is_high_priority', 'priority_reason', 'notes',
            'claim_locked', 'reopened_at', 'reopened_by', 'archived_at'
        ]
        read_only_fields = fields

    def get_duration_minutes(self, obj):
        return obj.duration_minutes


def serialize_assignment_record(record):
    """Serialize an active or archived assignment."""
    if isinstance(record, AssignmentHistory):
        return AssignmentHistorySerializer(record).data
    return AssignmentDetailSerializer(record).data


class TransitionSerializer(serializers.Serializer):
    """Serializer for moving an assignment through the workflow."""

    state = serializers.ChoiceField(choices=[
        AssignmentState.PREPARING, AssignmentState.WAITING,
        AssignmentState.COMPLETED, AssignmentState.CANCELLED,
    ])
    skip_remote_sync = serializers.BooleanField(default=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    force = serializers.BooleanField(default=False)


class ReleaseSerializer(serializers.Serializer):
    """Serializer for handing an order back."""

    remote_status = serializers.CharField(required=False, allow_blank=True, max_length=64)
    reason = serializers.CharField(required=False, allow_blank=True)


class ReassignSerializer(serializers.Serializer):
    """Serializer for bulk reassignment."""

    assignment_ids = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    worker_id = serializers.IntegerField()

    def validate_worker_id(self, value):
        """Validate the target worker exists and is active."""
        User = get_user_model()
        try:
            worker = User.objects.get(pk=value)
        except User.DoesNotExist:
            raise serializers.ValidationError("Worker not found")
        if not worker.is_active:
            raise serializers.ValidationError("Worker is not active")
        return value


class AssignmentIdsSerializer(serializers.Serializer):
    assignment_ids = serializers.ListField(child=serializers.CharField(), allow_empty=False)


class RemoveSerializer(serializers.Serializer):
    """Serializer for bulk removal by assignment or order id."""

    assignment_ids = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    order_ids = serializers.ListField(child=serializers.CharField(), required=False, default=list)

    def validate(self, attrs):
        if not attrs.get('assignment_ids') and not attrs.get('order_ids'):
            raise serializers.ValidationError("Provide assignment_ids or order_ids")
        return attrs


class AssignmentPrioritySerializer(serializers.Serializer):
    is_high_priority = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)
