"""
Priority mark serializers for the Order Preparation module.
"""

from rest_framework import serializers

from ..models import PriorityMark


class PriorityMarkSerializer(serializers.ModelSerializer):
    """Serializer for priority marks."""

    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = PriorityMark
        fields = [
            'id', 'order_id', 'order_number', 'customer_name', 'reason',
            'notes', 'created_by', 'created_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class PriorityMarkCreateSerializer(serializers.Serializer):
    """Serializer for marking an order as high priority."""

    order_id = serializers.CharField(max_length=64)
    order_number = serializers.CharField(max_length=64, required=False, allow_blank=True)
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
